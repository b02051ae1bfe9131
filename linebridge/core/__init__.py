"""
Core components of the chat bridge.

This module contains the per-message pipeline:
- ChatBridge: Composition root owning all state
- EventHandler: normalize -> route -> reply -> record
- RoutingPolicy: handoff / FAQ / model decision
- LexicalRetriever, SemanticRetriever: FAQ ranking
- ConversationMemory: bounded per-user history
"""

from .text import normalize, tokenize
from .faq_index import FaqEntry, FaqIndex, FaqLoadError
from .retriever import LexicalRetriever, SemanticRetriever, RetrievalHit, cosine_similarity
from .conversation import ConversationMemory, ConversationTurn
from .routing import Route, RouteResult, RoutingPolicy, IntentRule
from .handler import EventHandler
from .bridge import ChatBridge

__all__ = [
    'normalize',
    'tokenize',
    'FaqEntry',
    'FaqIndex',
    'FaqLoadError',
    'LexicalRetriever',
    'SemanticRetriever',
    'RetrievalHit',
    'cosine_similarity',
    'ConversationMemory',
    'ConversationTurn',
    'Route',
    'RouteResult',
    'RoutingPolicy',
    'IntentRule',
    'EventHandler',
    'ChatBridge',
]
