"""
Infrastructure services for the bridge.

Provides the external collaborators:
- LLM: OpenAI chat completions with rate-limit retry
- Embeddings: OpenAI embeddings for online FAQ retrieval
- Messaging: LINE reply API, webhook models and signature check
- Handoff: best-effort staff notification webhook
"""

from .llm import LLMProvider
from .embeddings import EmbeddingModel
from .messaging import LineMessagingClient, WebhookEvent, WebhookPayload, verify_signature
from .handoff import HandoffNotifier

__all__ = [
    'LLMProvider',
    'EmbeddingModel',
    'LineMessagingClient',
    'WebhookEvent',
    'WebhookPayload',
    'verify_signature',
    'HandoffNotifier',
]
