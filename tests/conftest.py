import pytest


@pytest.fixture
def mail_home(tmp_path, monkeypatch):
    """Point MAILTERM_HOME at a temporary directory."""
    monkeypatch.setenv("MAILTERM_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def multipart_message() -> bytes:
    return (
        b"From: Alice <alice@example.com>\n"
        b"To: Bob <bob@example.com>\n"
        b"Subject: Quarterly report\n"
        b"Date: Mon, 1 Jan 2024 10:00:00 +0000\n"
        b"MIME-Version: 1.0\n"
        b"Content-Type: multipart/mixed; boundary=\"XYZ\"\n"
        b"\n"
        b"--XYZ\n"
        b"Content-Type: text/plain; charset=utf-8\n"
        b"\n"
        b"Hello   Bob\n"
        b"--XYZ\n"
        b"Content-Type: text/html; charset=utf-8\n"
        b"\n"
        b"<style>p { color: red }</style><p style=\"color:red\">See <b>attached</b></p>\n"
        b"--XYZ\n"
        b"Content-Type: application/octet-stream\n"
        b"Content-Transfer-Encoding: base64\n"
        b"\n"
        b"U0VDUkVUIEFUVEFDSE1FTlQ=\n"
        b"--XYZ--\n"
    )
