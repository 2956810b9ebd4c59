"""
IMAP email provider implementation.
Supports generic IMAP servers with SSL/TLS.
"""

import asyncio
import email
import imaplib
import logging
import re
import threading
from typing import Any, Dict, List, Optional

from ..rendering.headers import HeaderSet
from .base import (
    EmailFolder,
    EmailProvider,
    ImapMessageSummary,
    MailSession,
    ProviderError,
    ProviderType,
)
from .streaming import FetchStream

logger = logging.getLogger(__name__)

_LIST_RESPONSE = re.compile(rb'\((?P<flags>[^)]*)\) (?P<delimiter>"[^"]*"|NIL) (?P<name>.+)')
_UID = re.compile(rb"UID (\d+)")
_FLAGS = re.compile(rb"FLAGS \(([^)]*)\)")
_SUMMARY_FIELDS = "(UID FLAGS BODY.PEEK[HEADER.FIELDS (FROM SUBJECT DATE)])"


def _quote_mailbox(name: str) -> str:
    return '"' + name.replace('\\', '\\\\').replace('"', '\\"') + '"'


class IMAPProvider(EmailProvider):
    """
    IMAP email provider for generic email servers.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize IMAP provider.

        Config keys:
            server: IMAP server hostname
            port: IMAP port (default 993 for SSL)
            username: Email username
            password: Email password
            use_ssl: Use SSL/TLS connection (default True)
            mailbox: Mailbox selected by default (default INBOX)
        """
        super().__init__(config)
        self.server = config.get('server')
        self.port = int(config.get('port') or 993)
        self.username = config.get('username')
        self.password = config.get('password')
        self.use_ssl = config.get('use_ssl', True)
        self.mailbox = config.get('mailbox') or 'INBOX'
        self._connection: Optional[imaplib.IMAP4] = None
        self._selected: Optional[str] = None
        self._io_lock = threading.Lock()

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.IMAP

    @property
    def default_folder(self) -> str:
        return self.mailbox

    def _connect(self):
        """Synchronous connection method."""
        if self.use_ssl:
            self._connection = imaplib.IMAP4_SSL(self.server, self.port)
        else:
            self._connection = imaplib.IMAP4(self.server, self.port)

        self._connection.login(self.username, self.password)
        self._selected = None

    def _conn(self) -> imaplib.IMAP4:
        if self._connection is None:
            self._connect()
            self._authenticated = True
        return self._connection

    def _select(self, session: MailSession) -> int:
        """Select the session's mailbox, returning its message count."""
        folder = session.folder_id or self.default_folder
        status, data = self._conn().select(_quote_mailbox(folder))
        if status != 'OK':
            raise ProviderError(f"Cannot select mailbox {folder}: {data}")
        self._selected = folder
        try:
            return int(data[0])
        except (TypeError, ValueError, IndexError):
            return 0

    def _noop(self):
        with self._io_lock:
            return self._conn().noop()

    async def test_connection(self) -> Dict[str, Any]:
        """Test IMAP connection."""
        try:
            loop = asyncio.get_event_loop()
            status, _ = await loop.run_in_executor(None, self._noop)

            if status == 'OK':
                return {'success': True, 'message': 'Connection successful'}
            else:
                return {'success': False, 'error': f'IMAP status: {status}'}
        except Exception as e:
            return {'success': False, 'error': str(e)}

    def _produce_folders(self, stream: FetchStream) -> None:
        with self._io_lock:
            status, folder_list = self._conn().list()
        if status != 'OK':
            raise ProviderError(f"IMAP LIST failed: {status}")

        for folder_data in folder_list:
            if not isinstance(folder_data, bytes):
                continue
            match = _LIST_RESPONSE.match(folder_data)
            if not match:
                logger.warning(f"Unparseable LIST response: {folder_data!r}")
                continue
            name = match.group('name').decode('utf-8', errors='replace').strip()
            if name.startswith('"') and name.endswith('"'):
                name = name[1:-1].replace('\\"', '"').replace('\\\\', '\\')
            stream.put(EmailFolder(folder_id=name, name=name))

    async def list_folders(self, session: MailSession) -> List[EmailFolder]:
        """Get all IMAP folders."""
        try:
            return await FetchStream.run(self._produce_folders)
        except Exception as e:
            logger.error(f"Error listing folders: {e}")
            return []

    def _parse_summaries(self, fetch_data: List[Any]) -> List[ImapMessageSummary]:
        summaries = []
        for index, item in enumerate(fetch_data):
            if not isinstance(item, tuple):
                continue
            envelope, header_bytes = item[0], item[1]
            # Some servers send FLAGS after the header literal
            trailer = fetch_data[index + 1] if index + 1 < len(fetch_data) else b''
            if not isinstance(trailer, bytes):
                trailer = b''

            uid_match = _UID.search(envelope) or _UID.search(trailer)
            if not uid_match:
                continue
            flags_match = _FLAGS.search(envelope) or _FLAGS.search(trailer)
            flags = flags_match.group(1) if flags_match else b''
            if b'\\Deleted' in flags:
                continue

            headers = HeaderSet.from_message(email.message_from_bytes(header_bytes))
            summaries.append(ImapMessageSummary(
                uid=int(uid_match.group(1)),
                subject=headers.get('Subject', ''),
                sender=headers.get('From', ''),
                date=headers.get('Date', ''),
            ))
        return summaries

    async def list_messages(self, session: MailSession) -> List[ImapMessageSummary]:
        """Fetch the newest page of messages, or the page below the last one fetched."""
        if session.exhausted:
            return []

        page: Dict[str, int] = {}

        def produce(stream: FetchStream) -> None:
            with self._io_lock:
                total = self._select(session)
                upper = int(session.next_page_token) if session.next_page_token else total
                lower = max(1, upper - session.page_size + 1)
                page['lower'] = lower
                if upper < 1:
                    return
                status, msg_data = self._conn().fetch(f"{lower}:{upper}", _SUMMARY_FIELDS)
            if status != 'OK':
                raise ProviderError(f"IMAP fetch failed: {status}")
            for summary in self._parse_summaries(msg_data):
                stream.put(summary)

        try:
            summaries = await FetchStream.run(produce)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Error fetching messages: {e}") from e

        lower = page.get('lower', 1)
        if lower > 1:
            session.next_page_token = str(lower - 1)
        else:
            session.next_page_token = None
            session.exhausted = True

        summaries.sort(key=lambda s: s.uid, reverse=True)
        return summaries

    async def fetch_raw_message(self, session: MailSession, message_id: str) -> bytes:
        """Fetch the full BODY[] section of one message by UID."""
        def produce(stream: FetchStream) -> None:
            with self._io_lock:
                self._select(session)
                status, msg_data = self._conn().uid('FETCH', message_id, '(BODY.PEEK[])')
            if status != 'OK':
                raise ProviderError(f"IMAP fetch failed: {status}")
            for item in msg_data:
                if isinstance(item, tuple):
                    stream.put(item[1])

        try:
            bodies = await FetchStream.run(produce, maxsize=1)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Error fetching message {message_id}: {e}") from e

        if not bodies:
            raise ProviderError(f"No message body for UID {message_id}")
        return bodies[0]

    async def _store_flag(self, session: MailSession, message_id: str, flag: str) -> bool:
        def store():
            with self._io_lock:
                if self._selected != (session.folder_id or self.default_folder):
                    self._select(session)
                return self._conn().uid('STORE', message_id, '+FLAGS', f'({flag})')

        loop = asyncio.get_event_loop()
        status, _ = await loop.run_in_executor(None, store)
        return status == 'OK'

    async def mark_as_read(self, session: MailSession, message_id: str) -> bool:
        """Mark email as read."""
        try:
            return await self._store_flag(session, message_id, '\\Seen')
        except Exception as e:
            logger.error(f"Error marking email as read: {e}")
            return False

    async def delete_message(self, session: MailSession, message_id: str) -> bool:
        """Flag email as deleted."""
        try:
            return await self._store_flag(session, message_id, '\\Deleted')
        except Exception as e:
            logger.error(f"Error deleting email: {e}")
            return False

    async def disconnect(self) -> None:
        """Disconnect from IMAP server."""
        if self._connection:
            try:
                self._connection.logout()
            except (imaplib.IMAP4.error, OSError) as e:
                logger.warning(f"IMAP logout failed: {e}")
            self._connection = None
        self._selected = None
        self._authenticated = False
