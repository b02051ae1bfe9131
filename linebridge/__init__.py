"""LINE FAQ bridge: webhook in, FAQ/LLM answer out."""

__version__ = "1.0.0"
