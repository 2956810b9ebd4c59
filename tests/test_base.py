import asyncio
from datetime import datetime

import pytest

from mailterm.providers import (
    EmlFileSource,
    GmailThreadSummary,
    GraphMessageSummary,
    ImapMessageSummary,
    MailSession,
    ProviderError,
    ProviderType,
    summary_line,
)


def test_summary_line_for_each_backend():
    assert summary_line(GmailThreadSummary("t1", "Lunch?")) == ("Lunch?", "t1")
    assert summary_line(GmailThreadSummary("t2", "")) == ("(no snippet)", "t2")
    assert summary_line(GraphMessageSummary("m1", "Report", is_read=True)) == ("Report", "m1")
    assert summary_line(GraphMessageSummary("m2", "", received_at=datetime(2024, 1, 1))) == ("* (no subject)", "m2")
    assert summary_line(ImapMessageSummary(42, "Invoice")) == ("Invoice", "42")


def test_summary_message_ids():
    assert GmailThreadSummary("t1", "x").message_id == "t1"
    assert GraphMessageSummary("m1", "x").message_id == "m1"
    assert ImapMessageSummary(7, "x").message_id == "7"


def test_summary_line_rejects_unknown_types():
    with pytest.raises(TypeError):
        summary_line({"id": "x"})


def test_reset_paging_keeps_folder_and_user():
    session = MailSession(folder_id="Archive", next_page_token="abc", user_id="u1", exhausted=True)
    session.reset_paging()

    assert session.next_page_token is None
    assert not session.exhausted
    assert (session.folder_id, session.user_id) == ("Archive", "u1")


def test_provider_type_labels():
    assert ProviderType("graph").label == "Microsoft Graph"
    assert [p.value for p in ProviderType] == ["gmail", "graph", "imap"]


def test_eml_file_source(tmp_path):
    path = tmp_path / "message.eml"
    path.write_bytes(b"Subject: Hi\n\nBody\n")
    source = EmlFileSource()

    assert asyncio.run(source.fetch_raw_message(MailSession(), str(path))) == b"Subject: Hi\n\nBody\n"
    with pytest.raises(ProviderError):
        asyncio.run(source.fetch_raw_message(MailSession(), str(tmp_path / "missing.eml")))
