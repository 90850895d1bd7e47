"""
Unit tests for the distributor feed client and shared HTTP helpers.
"""

import pytest
import requests
from unittest.mock import Mock

from catalog_sync.clients.feed import BROWSER_HEADERS, FeedClient
from catalog_sync.clients.http import raise_for_transport_status, send
from catalog_sync.errors import (
    FeedUnavailable,
    PermanentTransportError,
    TransientTransportError,
    TransportUnreachable,
)


def make_response(status_code=200, text="", reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.text = text
    return response


class TestTransportHelpers:
    """Test suite for HTTP status classification."""

    @pytest.mark.parametrize("status", [502, 503, 504])
    def test_gateway_errors_are_transient(self, status):
        """Test that gateway statuses are retryable."""
        with pytest.raises(TransientTransportError) as exc_info:
            raise_for_transport_status(make_response(status, reason="Bad"), "Feed request")

        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [400, 401, 404, 429, 500])
    def test_other_errors_are_permanent(self, status):
        """Test that every other error status is not retried."""
        with pytest.raises(PermanentTransportError):
            raise_for_transport_status(make_response(status, reason="Nope"), "Feed request")

    def test_success_passes(self):
        """Test that a 2xx response is accepted."""
        raise_for_transport_status(make_response(200), "Feed request")

    def test_connection_error_is_unreachable(self):
        """Test that connection failures map to TransportUnreachable."""
        session = Mock()
        session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportUnreachable):
            send(session, "GET", "https://example.com", "Feed request")

    def test_timeout_is_unreachable(self):
        """Test that timeouts map to TransportUnreachable."""
        session = Mock()
        session.request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(TransportUnreachable):
            send(session, "GET", "https://example.com", "Feed request")


class TestFeedClient:
    """Test suite for FeedClient."""

    @pytest.fixture
    def session(self):
        session = Mock()
        session.headers = {}
        return session

    @pytest.fixture
    def sleep(self):
        return Mock()

    @pytest.fixture
    def client(self, session, sleep):
        return FeedClient(
            "https://feed.example.com/inventory?full=true",
            "user",
            "secret",
            session=session,
            sleep=sleep,
        )

    def test_configures_auth_and_headers(self, client, session):
        """Test basic auth and browser headers on the session."""
        assert session.auth == ("user", "secret")
        assert session.headers["User-Agent"] == BROWSER_HEADERS["User-Agent"]

    def test_fetch_feed_success(self, client, session):
        """Test a successful download."""
        session.request.return_value = make_response(200, text="id,available\nA,1\n")

        assert client.fetch_feed() == "id,available\nA,1\n"
        session.request.assert_called_once_with(
            "GET", "https://feed.example.com/inventory?full=true", timeout=30.0
        )

    def test_fetch_feed_retries_gateway_errors(self, client, session, sleep):
        """Test recovery after a 503."""
        session.request.side_effect = [
            make_response(503, reason="Service Unavailable"),
            make_response(200, text="id\nA\n"),
        ]

        assert client.fetch_feed() == "id\nA\n"
        sleep.assert_called_once_with(2.0)

    def test_fetch_feed_exhausted(self, client, session, sleep):
        """Test that three 503s make the feed unavailable."""
        session.request.return_value = make_response(503, reason="Service Unavailable")

        with pytest.raises(FeedUnavailable, match="after 3 attempt"):
            client.fetch_feed()

        assert session.request.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0]

    def test_fetch_feed_auth_failure_not_retried(self, client, session, sleep):
        """Test that a 401 fails immediately."""
        session.request.return_value = make_response(401, reason="Unauthorized")

        with pytest.raises(FeedUnavailable, match="401"):
            client.fetch_feed()

        assert session.request.call_count == 1
        sleep.assert_not_called()
