import asyncio
import base64
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from mailterm.providers import GmailProvider, GmailThreadSummary, MailSession, ProviderError
from mailterm.providers.gmail import decode_raw_envelope
from mailterm.rendering import EncodingError

RAW = b"From: a@example.com\r\nSubject: Hi\r\n\r\nHello there\r\n"


def _envelope(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def provider(service):
    return GmailProvider({}, service=service)


def test_list_messages_pages_through_threads(provider, service):
    threads = service.users.return_value.threads.return_value
    threads.list.return_value.execute.side_effect = [
        {"threads": [{"id": "t1", "snippet": "Hello"}, {"id": "t2", "snippet": ""}], "nextPageToken": "p2"},
        {"threads": [{"id": "t3", "snippet": "Last"}]},
    ]
    session = MailSession(page_size=2)

    first = asyncio.run(provider.list_messages(session))
    assert first == [GmailThreadSummary("t1", "Hello"), GmailThreadSummary("t2", "")]
    assert session.next_page_token == "p2"
    threads.list.assert_called_with(userId="me", labelIds=["INBOX"], maxResults=2)

    second = asyncio.run(provider.list_messages(session))
    assert [s.thread_id for s in second] == ["t3"]
    threads.list.assert_called_with(userId="me", labelIds=["INBOX"], maxResults=2, pageToken="p2")
    assert session.exhausted

    assert asyncio.run(provider.list_messages(session)) == []
    assert threads.list.call_count == 2


def test_list_messages_uses_selected_label(provider, service):
    threads = service.users.return_value.threads.return_value
    threads.list.return_value.execute.return_value = {}
    session = MailSession(folder_id="Label_7")

    assert asyncio.run(provider.list_messages(session)) == []
    assert threads.list.call_args.kwargs["labelIds"] == ["Label_7"]


def test_list_messages_http_error(provider, service):
    threads = service.users.return_value.threads.return_value
    threads.list.return_value.execute.side_effect = HttpError(httplib2.Response({"status": "500"}), b"boom")

    with pytest.raises(ProviderError):
        asyncio.run(provider.list_messages(MailSession()))


def test_fetch_raw_message_opens_latest_message_of_thread(provider, service):
    users = service.users.return_value
    users.threads.return_value.get.return_value.execute.return_value = {
        "messages": [{"id": "m1"}, {"id": "m2"}]
    }
    users.messages.return_value.get.return_value.execute.return_value = {"raw": _envelope(RAW)}

    assert asyncio.run(provider.fetch_raw_message(MailSession(), "t1")) == RAW
    users.messages.return_value.get.assert_called_with(userId="me", id="m2", format="raw")


def test_fetch_raw_message_without_raw_content(provider, service):
    users = service.users.return_value
    users.threads.return_value.get.return_value.execute.return_value = {"messages": [{"id": "m1"}]}
    users.messages.return_value.get.return_value.execute.return_value = {}

    with pytest.raises(ProviderError):
        asyncio.run(provider.fetch_raw_message(MailSession(), "t1"))


def test_decode_raw_envelope_restores_padding():
    assert decode_raw_envelope(_envelope(b"ab")) == b"ab"
    assert decode_raw_envelope(_envelope(RAW)) == RAW


def test_invalid_raw_envelope():
    with pytest.raises(EncodingError):
        decode_raw_envelope("abcde")


def test_mark_as_read_removes_unread_label(provider, service):
    threads = service.users.return_value.threads.return_value

    assert asyncio.run(provider.mark_as_read(MailSession(), "t1"))
    threads.modify.assert_called_once_with(userId="me", id="t1", body={"removeLabelIds": ["UNREAD"]})


def test_delete_trashes_latest_message(provider, service):
    users = service.users.return_value
    users.threads.return_value.get.return_value.execute.return_value = {
        "messages": [{"id": "m1"}, {"id": "m2"}]
    }

    assert asyncio.run(provider.delete_message(MailSession(), "t1"))
    users.messages.return_value.trash.assert_called_once_with(userId="me", id="m2")


def test_delete_failure_returns_false(provider, service):
    users = service.users.return_value
    users.threads.return_value.get.return_value.execute.side_effect = HttpError(
        httplib2.Response({"status": "404"}), b"not found"
    )

    assert asyncio.run(provider.delete_message(MailSession(), "t1")) is False


def test_list_folders(provider, service):
    labels = service.users.return_value.labels.return_value
    labels.list.return_value.execute.return_value = {
        "labels": [{"id": "INBOX", "name": "INBOX"}, {"id": "Label_7", "name": "Receipts"}]
    }

    folders = asyncio.run(provider.list_folders(MailSession()))
    assert [(f.folder_id, f.name) for f in folders] == [("INBOX", "INBOX"), ("Label_7", "Receipts")]


def test_connection_reports_profile_address(provider, service):
    service.users.return_value.getProfile.return_value.execute.return_value = {"emailAddress": "me@example.com"}

    assert asyncio.run(provider.test_connection()) == {"success": True, "message": "Connected as me@example.com"}
    service.users.return_value.getProfile.assert_called_with(userId="me")
