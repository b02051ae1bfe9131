"""Chat log and usage analytics."""

from .chat_logger import ChatLogger, ChatLogRecord

__all__ = ['ChatLogger', 'ChatLogRecord']
