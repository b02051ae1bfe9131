"""HTTP surface of the bridge."""

from .server import create_app

__all__ = ['create_app']
