"""
Email providers for different email services.
"""

from .base import (
    EmailFolder,
    EmailProvider,
    GmailThreadSummary,
    GraphMessageSummary,
    ImapMessageSummary,
    MailSession,
    MessageSummary,
    ProviderError,
    ProviderType,
    summary_line,
)
from .eml import EmlFileSource
from .gmail import GmailProvider
from .imap import IMAPProvider
from .microsoft import MicrosoftProvider
from .streaming import FetchStream

__all__ = [
    'EmailFolder',
    'EmailProvider',
    'GmailThreadSummary',
    'GraphMessageSummary',
    'ImapMessageSummary',
    'MailSession',
    'MessageSummary',
    'ProviderError',
    'ProviderType',
    'summary_line',
    'EmlFileSource',
    'GmailProvider',
    'IMAPProvider',
    'MicrosoftProvider',
    'FetchStream',
]
