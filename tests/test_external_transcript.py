"""Tests for transcript fetching."""

import httpx
import pytest

from skipmap.config import FetchConfig
from skipmap.external_transcript import (
    FetchError,
    create_http_client,
    fetch_text,
    fetch_transcript_file,
    order_transcript_files,
)
from skipmap.models import TranscriptFile

URL = "https://example.com/transcript"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestCreateHttpClient:
    def test_settings_applied(self):
        client = create_http_client(FetchConfig(timeout=5.0, user_agent="skipmap-test"))
        try:
            assert client.headers["User-Agent"] == "skipmap-test"
            assert client.follow_redirects is True
            assert client.timeout.read == 5.0
        finally:
            client.close()


class TestFetchText:
    def test_success(self):
        """Should return the body and send the Accept header."""
        seen = {}

        def handler(request):
            seen["accept"] = request.headers.get("Accept")
            return httpx.Response(200, text="<p>transcript</p>")

        assert fetch_text(_client(handler), URL, accept="text/html") == "<p>transcript</p>"
        assert seen["accept"] == "text/html"

    def test_http_error_status(self):
        client = _client(lambda request: httpx.Response(503, text="busy"))
        with pytest.raises(FetchError, match="HTTP 503"):
            fetch_text(client, URL)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(FetchError, match="Timed out"):
            fetch_text(_client(handler), URL)

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError, match="connection refused"):
            fetch_text(_client(handler), URL)

    def test_transcript_file_accept_type(self):
        """Structured files are requested with their own MIME type."""
        seen = {}

        def handler(request):
            seen["accept"] = request.headers.get("Accept")
            return httpx.Response(200, text="WEBVTT")

        transcript_file = TranscriptFile(url=URL + ".vtt", type="text/vtt")
        assert fetch_transcript_file(_client(handler), transcript_file) == "WEBVTT"
        assert seen["accept"] == "text/vtt"


class TestOrderTranscriptFiles:
    def test_preference_order(self):
        """SRT first, then VTT, JSON, HTML; unsupported types dropped."""
        files = [
            TranscriptFile(url="a.json", type="application/json"),
            TranscriptFile(url="b.pdf", type="application/pdf"),
            TranscriptFile(url="c.html", type="text/html"),
            TranscriptFile(url="d.vtt", type="text/vtt"),
            TranscriptFile(url="e.srt", type="application/x-subrip"),
            TranscriptFile(url="f.vtt", type="text/vtt"),
        ]
        assert [f.url for f in order_transcript_files(files)] == [
            "e.srt", "d.vtt", "f.vtt", "a.json", "c.html",
        ]

    def test_empty(self):
        assert order_transcript_files([]) == []
