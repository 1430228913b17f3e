"""
Tests for the transactional mail client.
"""

import json

import httpx
import pytest

from labsite.infrastructure.mailer import MailDeliveryError, MailerClient


def _mailer(handler):
    mailer = MailerClient(base_url="http://mail.test/v1/", api_key="key", transport=httpx.MockTransport(handler))
    mailer.retry_delay = 0
    return mailer


class TestMailerClient:
    @pytest.mark.asyncio
    async def test_posts_message(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"id": "msg-1"})

        result = await _mailer(handler).send_password_reset_email(
            "a@x.io", "Alice", "http://frontend.test/reinitialiser-mot-de-passe/abc"
        )

        assert result == {"id": "msg-1"}
        request = requests[0]
        assert str(request.url) == "http://mail.test/v1/messages"
        assert request.headers["authorization"] == "Bearer key"
        payload = json.loads(request.content)
        assert payload["to"] == ["a@x.io"]
        assert "reinitialiser-mot-de-passe/abc" in payload["html"]

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={})

        await _mailer(handler).send("a@x.io", "Subject", "<p>Hi</p>")
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={"error": "bad sender"})

        with pytest.raises(MailDeliveryError):
            await _mailer(handler).send("a@x.io", "Subject", "<p>Hi</p>")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unconfigured_client_skips(self):
        result = await MailerClient(base_url="").send("a@x.io", "Subject", "<p>Hi</p>")
        assert result == {"status": "skipped"}
