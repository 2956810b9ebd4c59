"""
MailTerm: a terminal email client for Gmail, Microsoft Graph and IMAP.
Every backend's messages are rendered by one shared decoding pipeline.
"""

from .client import EmailClient
from .providers.base import EmailProvider, MailSession, ProviderType
from .rendering import RenderedMessage, decode_message

__version__ = "0.1.0"

__all__ = [
    'EmailClient',
    'EmailProvider',
    'MailSession',
    'ProviderType',
    'RenderedMessage',
    'decode_message',
]
