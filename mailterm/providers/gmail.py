"""
Gmail email provider implementation.
Uses Google Gmail API for email access.
"""
from __future__ import annotations

import base64
import binascii
import logging
import os
import pickle
from typing import Any, Dict, List, Optional

from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..rendering.errors import EncodingError
from .base import (
    EmailFolder,
    EmailProvider,
    GmailThreadSummary,
    MailSession,
    ProviderError,
    ProviderType,
)

logger = logging.getLogger(__name__)


def decode_raw_envelope(data: str) -> bytes:
    """Decode the base64url 'raw' field of a Gmail message resource."""
    try:
        # Add padding if needed
        padding = 4 - len(data) % 4
        if padding != 4:
            data += '=' * padding
        return base64.urlsafe_b64decode(data.encode('ascii'))
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise EncodingError(f"invalid Gmail raw message envelope: {e}") from e


class GmailProvider(EmailProvider):
    """
    Gmail email provider using Google API.

    Messages are listed as threads; opening a thread renders its most recent
    message.
    """

    SCOPES = ['https://www.googleapis.com/auth/gmail.modify']
    USER_ID = 'me'

    def __init__(self, config: Dict[str, Any], service: Any = None):
        """
        Initialize Gmail provider.

        Config keys:
            credentials_file: Path to OAuth2 client secrets JSON file
            token_file: Path to store/load OAuth2 token (default: gmail_token.pickle)

        Args:
            service: Prebuilt Gmail API service object (skips OAuth when given)
        """
        super().__init__(config)
        self.credentials_file = config.get('credentials_file') or 'client_secret.json'
        self.token_file = config.get('token_file') or 'gmail_token.pickle'
        self._service = service
        self._credentials = None
        if service is not None:
            self._authenticated = True

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.GMAIL

    def _get_credentials(self) -> Any:
        """Get or refresh OAuth2 credentials."""
        creds = None

        # Load existing token
        if os.path.exists(self.token_file):
            with open(self.token_file, 'rb') as token:
                creds = pickle.load(token)

        # Refresh or get new credentials
        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                # Check if credentials file exists
                if not os.path.exists(self.credentials_file):
                    raise FileNotFoundError(
                        f"Credentials file not found: {self.credentials_file}. "
                        "Download OAuth2 credentials from Google Cloud Console."
                    )

                flow = InstalledAppFlow.from_client_secrets_file(
                    self.credentials_file, self.SCOPES
                )
                creds = flow.run_local_server(port=0)

            # Save credentials
            with open(self.token_file, 'wb') as token:
                pickle.dump(creds, token)

        return creds

    def _get_service(self):
        """Get or create Gmail API service."""
        if self._service is None:
            self._credentials = self._get_credentials()
            self._service = build('gmail', 'v1', credentials=self._credentials)
        return self._service

    def _latest_message_id(self, thread_id: str) -> str:
        thread = self._get_service().users().threads().get(
            userId=self.USER_ID,
            id=thread_id,
            format='minimal'
        ).execute()
        messages = thread.get('messages', [])
        if not messages:
            raise ProviderError(f"Thread {thread_id} has no messages")
        return messages[-1]['id']

    async def test_connection(self) -> Dict[str, Any]:
        """Test connection to Gmail API."""
        try:
            service = self._get_service()
            profile = service.users().getProfile(userId=self.USER_ID).execute()
            return {
                'success': True,
                'message': f"Connected as {profile.get('emailAddress', 'unknown')}"
            }
        except Exception as e:
            return {'success': False, 'error': str(e)}

    async def list_folders(self, session: MailSession) -> List[EmailFolder]:
        """Get all Gmail labels (folders)."""
        try:
            service = self._get_service()
            results = service.users().labels().list(userId=self.USER_ID).execute()

            return [
                EmailFolder(folder_id=label['id'], name=label.get('name', label['id']))
                for label in results.get('labels', [])
            ]
        except Exception as e:
            logger.error(f"Error listing labels: {e}")
            return []

    async def list_messages(self, session: MailSession) -> List[GmailThreadSummary]:
        """Fetch one page of threads from the session's label."""
        if session.exhausted:
            return []

        params: Dict[str, Any] = {
            'userId': self.USER_ID,
            'labelIds': [session.folder_id or self.default_folder],
            'maxResults': session.page_size,
        }
        if session.next_page_token:
            params['pageToken'] = session.next_page_token

        try:
            response = self._get_service().users().threads().list(**params).execute()
        except HttpError as e:
            raise ProviderError(f"Gmail thread list failed: {e}") from e

        session.next_page_token = response.get('nextPageToken')
        session.exhausted = session.next_page_token is None

        return [
            GmailThreadSummary(thread_id=thread['id'], snippet=thread.get('snippet', ''))
            for thread in response.get('threads', [])
        ]

    async def fetch_raw_message(self, session: MailSession, message_id: str) -> bytes:
        """Fetch the latest message of a thread in raw RFC-822 form."""
        try:
            latest_id = self._latest_message_id(message_id)
            msg = self._get_service().users().messages().get(
                userId=self.USER_ID,
                id=latest_id,
                format='raw'
            ).execute()
        except HttpError as e:
            raise ProviderError(f"Gmail message fetch failed: {e}") from e

        raw = msg.get('raw')
        if not raw:
            raise ProviderError(f"Gmail returned no raw content for {latest_id}")
        return decode_raw_envelope(raw)

    async def mark_as_read(self, session: MailSession, message_id: str) -> bool:
        """Mark thread as read by removing UNREAD label."""
        try:
            self._get_service().users().threads().modify(
                userId=self.USER_ID,
                id=message_id,
                body={'removeLabelIds': ['UNREAD']}
            ).execute()
            return True
        except Exception as e:
            logger.error(f"Error marking email as read: {e}")
            return False

    async def delete_message(self, session: MailSession, message_id: str) -> bool:
        """Move the thread's latest message to the trash."""
        try:
            latest_id = self._latest_message_id(message_id)
            self._get_service().users().messages().trash(
                userId=self.USER_ID,
                id=latest_id
            ).execute()
            return True
        except Exception as e:
            logger.error(f"Error trashing email: {e}")
            return False

    async def disconnect(self) -> None:
        """Disconnect from Gmail API."""
        self._service = None
        self._credentials = None
        self._authenticated = False
