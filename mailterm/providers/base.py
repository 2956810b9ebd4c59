"""
Abstract base class for email providers.
Defines the interface that all email providers must implement, the session
context passed to every fetch call, and the per-provider message summaries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class ProviderType(str, Enum):
    """Supported email provider types."""
    GMAIL = "gmail"
    GRAPH = "graph"
    IMAP = "imap"

    @property
    def label(self) -> str:
        return {
            ProviderType.GMAIL: "Gmail",
            ProviderType.GRAPH: "Microsoft Graph",
            ProviderType.IMAP: "IMAP",
        }[self]


class ProviderError(RuntimeError):
    """Raised when a backend request fails."""
    pass


@dataclass
class MailSession:
    """
    Per-client, per-provider browsing state.

    Passed explicitly to every provider call so that paging and the resolved
    account never live in module globals.
    """
    page_size: int = 20
    folder_id: Optional[str] = None
    next_page_token: Optional[str] = None
    user_id: Optional[str] = None
    exhausted: bool = False

    def reset_paging(self) -> None:
        self.next_page_token = None
        self.exhausted = False


@dataclass
class EmailFolder:
    """Represents an email folder/label."""
    folder_id: str
    name: str
    unread_count: int = 0
    total_count: int = 0


@dataclass(frozen=True)
class GmailThreadSummary:
    """A Gmail thread as listed by threads.list."""
    thread_id: str
    snippet: str

    @property
    def message_id(self) -> str:
        return self.thread_id


@dataclass(frozen=True)
class GraphMessageSummary:
    """A message listed from a Graph mail folder."""
    message_id: str
    subject: str
    sender: str = ""
    received_at: Optional[datetime] = None
    is_read: bool = False


@dataclass(frozen=True)
class ImapMessageSummary:
    """A message envelope fetched from the selected IMAP mailbox."""
    uid: int
    subject: str
    sender: str = ""
    date: str = ""

    @property
    def message_id(self) -> str:
        return str(self.uid)


MessageSummary = Union[GmailThreadSummary, GraphMessageSummary, ImapMessageSummary]


def summary_line(summary: MessageSummary) -> Tuple[str, str]:
    """
    Render a message summary for the message list.

    Returns:
        (main text, message id to open)

    Raises:
        TypeError: For anything that is not one of the known summary variants
    """
    if isinstance(summary, GmailThreadSummary):
        return summary.snippet or "(no snippet)", summary.thread_id
    if isinstance(summary, GraphMessageSummary):
        marker = "" if summary.is_read else "* "
        return f"{marker}{summary.subject or '(no subject)'}", summary.message_id
    if isinstance(summary, ImapMessageSummary):
        return summary.subject or "(no subject)", str(summary.uid)
    raise TypeError(f"Unknown message summary type: {type(summary).__name__}")


class EmailProvider(ABC):
    """
    Abstract base class for email providers.

    All email providers (Gmail, Microsoft Graph, IMAP) must implement this
    interface. Opening a message only needs fetch_raw_message: the raw
    RFC-822 bytes are rendered by the shared decoding pipeline.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the email provider.

        Args:
            config: Provider-specific configuration dictionary
        """
        self.config = config
        self._authenticated = False

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        """Return the provider type identifier."""
        pass

    @property
    def is_authenticated(self) -> bool:
        """Check if currently authenticated."""
        return self._authenticated

    @property
    def default_folder(self) -> str:
        """Folder listed when the session has none selected."""
        return "INBOX"

    @abstractmethod
    async def test_connection(self) -> Dict[str, Any]:
        """
        Test the connection to the email provider.

        Returns:
            Dictionary with 'success' boolean and optional 'error' message
        """
        pass

    @abstractmethod
    async def list_folders(self, session: MailSession) -> List[EmailFolder]:
        """
        Get all available folders/labels.

        Returns:
            List of EmailFolder objects
        """
        pass

    @abstractmethod
    async def list_messages(self, session: MailSession) -> List[MessageSummary]:
        """
        Fetch one page of message summaries from the session's folder.

        The first page is fetched when session.next_page_token is None,
        otherwise the page it points to. The token is updated in place.

        Raises:
            ProviderError: If the backend request fails
        """
        pass

    @abstractmethod
    async def fetch_raw_message(self, session: MailSession, message_id: str) -> bytes:
        """
        Fetch one complete RFC-822 message.

        Args:
            session: Session the message was listed in
            message_id: Identifier from the message summary

        Returns:
            Raw message bytes (headers and body)

        Raises:
            ProviderError: If the message cannot be retrieved
        """
        pass

    @abstractmethod
    async def mark_as_read(self, session: MailSession, message_id: str) -> bool:
        """
        Mark an email as read.

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete_message(self, session: MailSession, message_id: str) -> bool:
        """
        Move an email to the trash (or flag it deleted).

        Returns:
            True if successful, False otherwise
        """
        pass

    async def disconnect(self) -> None:
        """Disconnect from the email provider."""
        self._authenticated = False
