"""
Microsoft 365 / Outlook email provider implementation.
Uses Microsoft Graph API for email access.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import msal

from .base import (
    EmailFolder,
    EmailProvider,
    GraphMessageSummary,
    MailSession,
    ProviderError,
    ProviderType,
)

logger = logging.getLogger(__name__)


class MicrosoftProvider(EmailProvider):
    """
    Microsoft 365 / Outlook email provider using Graph API.

    Message bodies are fetched as MIME ($value) so they render through the
    same pipeline as the other providers.
    """

    GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
    SCOPES = ["https://graph.microsoft.com/.default"]
    SUMMARY_FIELDS = "id,subject,from,isRead,receivedDateTime"

    def __init__(self, config: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize Microsoft provider.

        Config keys:
            tenant_id: Azure AD tenant ID
            client_id: Application (client) ID
            client_secret: Client secret value
            user_email: User mailbox to access (first directory user when empty)

        Args:
            transport: Optional httpx transport, used instead of the network
        """
        super().__init__(config)
        self.tenant_id = config.get('tenant_id')
        self.client_id = config.get('client_id')
        self.client_secret = config.get('client_secret')
        self.user_email = config.get('user_email')
        self._transport = transport
        self._access_token: Optional[str] = None
        self._msal_app: Optional[Any] = None

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GRAPH

    @property
    def default_folder(self) -> str:
        return "inbox"

    def _get_msal_app(self) -> Any:
        """Get or create MSAL application instance."""
        if self._msal_app is None:
            authority = f"https://login.microsoftonline.com/{self.tenant_id}"
            self._msal_app = msal.ConfidentialClientApplication(
                self.client_id,
                authority=authority,
                client_credential=self.client_secret
            )
        return self._msal_app

    async def _get_access_token(self) -> str:
        """Get access token using client credentials flow."""
        app = self._get_msal_app()

        # Try to get token from cache first
        result = app.acquire_token_silent(self.SCOPES, account=None)

        if not result:
            # Get new token
            result = app.acquire_token_for_client(scopes=self.SCOPES)

        if "access_token" in result:
            self._access_token = result["access_token"]
            self._authenticated = True
            return self._access_token
        else:
            error = result.get("error_description", result.get("error", "Unknown error"))
            raise ProviderError(f"Failed to acquire token: {error}")

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json_data: Optional[Dict] = None
    ) -> httpx.Response:
        """Make authenticated request to Graph API, retrying once on 401."""
        if not self._access_token:
            await self._get_access_token()

        url = endpoint if endpoint.startswith("https://") else f"{self.GRAPH_BASE_URL}{endpoint}"
        headers = {"Authorization": f"Bearer {self._access_token}"}

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=json_data,
                    timeout=30.0
                )

                if response.status_code == 401:
                    # Token might be expired, refresh and retry
                    await self._get_access_token()
                    headers["Authorization"] = f"Bearer {self._access_token}"
                    response = await client.request(
                        method=method,
                        url=url,
                        headers=headers,
                        params=params,
                        json=json_data,
                        timeout=30.0
                    )
        except httpx.RequestError as e:
            raise ProviderError(f"Graph request {method} {endpoint} failed: {e}") from e

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"Graph request {method} {endpoint} failed: {response.status_code}") from e
        return response

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json_data: Optional[Dict] = None
    ) -> Dict[str, Any]:
        response = await self._send(method, endpoint, params=params, json_data=json_data)
        return response.json() if response.content else {}

    async def _get_user_id(self, session: MailSession) -> str:
        """Resolve the mailbox owner once per session."""
        if session.user_id:
            return session.user_id
        if self.user_email:
            session.user_id = self.user_email
            return session.user_id

        result = await self._make_request(
            "GET",
            "/users",
            params={"$select": "displayName,mail,id", "$top": 25, "$orderby": "displayName"}
        )
        users = result.get('value', [])
        if not users:
            raise ProviderError("No users visible to this Graph application")
        session.user_id = users[0]['id']
        logger.info(f"Resolved Graph user {users[0].get('mail') or session.user_id}")
        return session.user_id

    @staticmethod
    def _parse_summary(msg: Dict[str, Any]) -> GraphMessageSummary:
        from_data = (msg.get('from') or {}).get('emailAddress', {})
        sender = from_data.get('name') or from_data.get('address', '')

        received_str = msg.get('receivedDateTime', '')
        received_at = datetime.fromisoformat(received_str.replace('Z', '+00:00')) if received_str else None

        return GraphMessageSummary(
            message_id=msg.get('id', ''),
            subject=msg.get('subject') or '',
            sender=sender,
            received_at=received_at,
            is_read=msg.get('isRead', False),
        )

    async def test_connection(self) -> Dict[str, Any]:
        """Test connection to Microsoft Graph API."""
        try:
            user_id = await self._get_user_id(MailSession())
            result = await self._make_request("GET", f"/users/{user_id}")
            return {
                'success': True,
                'message': f"Connected as {result.get('displayName', user_id)}"
            }
        except Exception as e:
            return {'success': False, 'error': str(e)}

    async def list_folders(self, session: MailSession) -> List[EmailFolder]:
        """Get all mail folders."""
        try:
            user_id = await self._get_user_id(session)
            result = await self._make_request(
                "GET",
                f"/users/{user_id}/mailFolders",
                params={"$top": 100}
            )

            folders = []
            for folder in result.get('value', []):
                folders.append(EmailFolder(
                    folder_id=folder.get('id', ''),
                    name=folder.get('displayName', ''),
                    unread_count=folder.get('unreadItemCount', 0),
                    total_count=folder.get('totalItemCount', 0)
                ))

            return folders
        except Exception as e:
            logger.error(f"Error listing folders: {e}")
            return []

    async def list_messages(self, session: MailSession) -> List[GraphMessageSummary]:
        """Fetch one page of messages, newest first."""
        if session.exhausted:
            return []

        if session.next_page_token:
            result = await self._make_request("GET", session.next_page_token)
        else:
            user_id = await self._get_user_id(session)
            folder_id = session.folder_id or self.default_folder
            result = await self._make_request(
                "GET",
                f"/users/{user_id}/mailFolders/{folder_id}/messages",
                params={
                    "$top": session.page_size,
                    "$select": self.SUMMARY_FIELDS,
                    "$orderby": "receivedDateTime DESC",
                }
            )

        session.next_page_token = result.get('@odata.nextLink')
        session.exhausted = session.next_page_token is None

        summaries = []
        for msg in result.get('value', []):
            try:
                summaries.append(self._parse_summary(msg))
            except (ValueError, AttributeError) as e:
                logger.warning(f"Error parsing email {msg.get('id')}: {e}")
        return summaries

    async def fetch_raw_message(self, session: MailSession, message_id: str) -> bytes:
        """Fetch the MIME content of a message."""
        user_id = await self._get_user_id(session)
        response = await self._send("GET", f"/users/{user_id}/messages/{message_id}/$value")
        return response.content

    async def mark_as_read(self, session: MailSession, message_id: str) -> bool:
        """Mark email as read."""
        try:
            user_id = await self._get_user_id(session)
            await self._make_request(
                "PATCH",
                f"/users/{user_id}/messages/{message_id}",
                json_data={"isRead": True}
            )
            return True
        except Exception as e:
            logger.error(f"Error marking email as read: {e}")
            return False

    async def delete_message(self, session: MailSession, message_id: str) -> bool:
        """Delete email (Graph moves it to Deleted Items)."""
        try:
            user_id = await self._get_user_id(session)
            await self._send("DELETE", f"/users/{user_id}/messages/{message_id}")
            return True
        except Exception as e:
            logger.error(f"Error deleting email: {e}")
            return False

    async def disconnect(self) -> None:
        """Disconnect from Microsoft Graph API."""
        self._access_token = None
        self._authenticated = False
