"""
Raw message source backed by .eml files on disk.
"""

from pathlib import Path

from .base import MailSession, ProviderError


class EmlFileSource:
    """Serves RFC-822 files as raw messages; the message id is the file path."""

    async def fetch_raw_message(self, session: MailSession, message_id: str) -> bytes:
        path = Path(message_id).expanduser()
        try:
            return path.read_bytes()
        except OSError as e:
            raise ProviderError(f"Cannot read {path}: {e}") from e
