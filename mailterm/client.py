"""
Email client: owns one provider and one browsing session per service and
routes list/open/delete actions to the active one.
"""

import configparser
import logging
from typing import Any, Dict, List, Optional, Type

from .config import provider_settings
from .providers.base import (
    EmailFolder,
    EmailProvider,
    MailSession,
    MessageSummary,
    ProviderError,
    ProviderType,
)
from .providers.gmail import GmailProvider
from .providers.imap import IMAPProvider
from .providers.microsoft import MicrosoftProvider
from .rendering import MessageDecodeError, RenderedMessage, decode_message

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: Dict[ProviderType, Type[EmailProvider]] = {
    ProviderType.GMAIL: GmailProvider,
    ProviderType.GRAPH: MicrosoftProvider,
    ProviderType.IMAP: IMAPProvider,
}


async def render_message(source, session: MailSession, message_id: str) -> RenderedMessage:
    """
    Fetch a message from any raw message source and decode it.

    Args:
        source: Anything with an async fetch_raw_message(session, message_id)
        session: Session passed through to the source
        message_id: Identifier understood by the source

    Raises:
        ProviderError: If the raw message cannot be fetched
        MessageDecodeError: If the raw message cannot be decoded
    """
    raw = await source.fetch_raw_message(session, message_id)
    return decode_message(raw)


class EmailClient:
    """
    Front end over all configured providers.
    """

    def __init__(
        self,
        config: configparser.ConfigParser,
        active_service: Optional[ProviderType] = None,
        providers: Optional[Dict[ProviderType, EmailProvider]] = None
    ):
        """
        Initialize the client.

        Args:
            config: Loaded mailterm configuration
            active_service: Service used until switch_to is called
            providers: Pre-built providers (built lazily from config otherwise)
        """
        self.config = config
        self.page_size = config.getint("general", "page_size", fallback=20)
        self.providers: Dict[ProviderType, EmailProvider] = dict(providers or {})
        self.sessions: Dict[ProviderType, MailSession] = {}
        self.active_service = active_service

    def register_provider(self, provider: EmailProvider):
        """Register an already-built provider."""
        self.providers[provider.provider_type] = provider
        logger.info(f"Registered provider {provider.provider_type.value}")

    def provider_for(self, service: ProviderType) -> EmailProvider:
        """
        Return the provider for a service, building it from config on first use.

        Raises:
            ConfigurationError: If the service is not configured
        """
        if service not in self.providers:
            settings = provider_settings(self.config, service)
            self.register_provider(PROVIDER_CLASSES[service](settings))
        return self.providers[service]

    def session_for(self, service: ProviderType) -> MailSession:
        if service not in self.sessions:
            self.sessions[service] = MailSession(page_size=self.page_size)
        return self.sessions[service]

    @property
    def provider(self) -> EmailProvider:
        if self.active_service is None:
            raise ProviderError("No email service selected")
        return self.provider_for(self.active_service)

    @property
    def session(self) -> MailSession:
        if self.active_service is None:
            raise ProviderError("No email service selected")
        return self.session_for(self.active_service)

    def switch_to(self, service: ProviderType) -> None:
        """Make a service active, restarting its paging from the first page."""
        self.provider_for(service)
        self.session_for(service).reset_paging()
        self.active_service = service
        logger.info(f"Switched to {service.label}")

    async def test_connection(self) -> Dict[str, Any]:
        """
        Check that the active service is reachable with its credentials.

        Returns:
            Dictionary with 'success' boolean and a 'message' or 'error'
        """
        try:
            result = await self.provider.test_connection()
        except ProviderError as e:
            result = {'success': False, 'error': str(e)}
        if result.get('success'):
            logger.info(f"Connection test for {self.active_service.label}: {result.get('message', 'ok')}")
        else:
            logger.warning(f"Connection test failed: {result.get('error')}")
        return result

    async def refresh(self) -> List[MessageSummary]:
        """Fetch the first page of the active folder."""
        self.session.reset_paging()
        return await self.provider.list_messages(self.session)

    async def next_page(self) -> List[MessageSummary]:
        """Fetch the page after the last one listed; empty after the last page."""
        return await self.provider.list_messages(self.session)

    async def list_folders(self) -> List[EmailFolder]:
        return await self.provider.list_folders(self.session)

    def select_folder(self, folder_id: str) -> None:
        self.session.folder_id = folder_id
        self.session.reset_paging()

    async def open_message(self, message_id: str) -> str:
        """
        Render a message for display.

        Returns:
            The rendered message text, or an error description to show in its
            place if the message could not be fetched or decoded
        """
        try:
            rendered = await render_message(self.provider, self.session, message_id)
        except (ProviderError, MessageDecodeError) as e:
            logger.error(f"Unable to render message {message_id}: {e}")
            return f"Error displaying message: {e}"

        if not await self.provider.mark_as_read(self.session, message_id):
            logger.warning(f"Could not mark message {message_id} as read")
        return rendered.text

    async def delete_message(self, message_id: str) -> bool:
        deleted = await self.provider.delete_message(self.session, message_id)
        if deleted:
            logger.info(f"Deleted message {message_id} via {self.active_service.value}")
        return deleted

    async def close(self) -> None:
        """Disconnect every provider that was built."""
        for provider in self.providers.values():
            await provider.disconnect()
