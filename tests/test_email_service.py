import asyncio
import json
from functools import partial
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from app.core import email_service
from app.core.email_service import EmailDeliveryError, build_magic_link, send_otp_email


def _mock_brevo(monkeypatch, handler):
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(email_service.httpx, "AsyncClient", partial(httpx.AsyncClient, transport=transport))


def test_magic_link_carries_login_params():
    link = urlparse(build_magic_link("a+b@example.com", "012345", "tok-1234"))

    assert f"{link.scheme}://{link.netloc}" == "http://localhost:3000"
    assert link.path == "/api/auth/verify-otp"
    assert parse_qs(link.query) == {"email": ["a+b@example.com"], "otp": ["012345"], "tokenId": ["tok-1234"]}


def test_send_posts_code_and_link(monkeypatch):
    sent = []

    def handler(request):
        sent.append(request)
        return httpx.Response(201, json={"messageId": "m-1"})

    _mock_brevo(monkeypatch, handler)

    asyncio.run(send_otp_email("dev@example.com", "012345", "tok-1234"))

    request = sent[0]
    assert str(request.url) == email_service.BREVO_SEND_URL
    assert request.headers["api-key"] == "test-key"
    body = json.loads(request.content)
    assert body["to"] == [{"email": "dev@example.com"}]
    assert "012345" in body["htmlContent"]
    assert "tokenId=tok-1234" in body["htmlContent"]


def test_send_raises_on_api_error(monkeypatch):
    _mock_brevo(monkeypatch, lambda request: httpx.Response(401, json={"message": "Key not found"}))

    with pytest.raises(EmailDeliveryError):
        asyncio.run(send_otp_email("dev@example.com", "012345", "tok-1234"))


def test_send_requires_api_key(monkeypatch, app_settings):
    monkeypatch.setattr(app_settings, "SENDINBLUE_API_KEY", None)

    with pytest.raises(EmailDeliveryError):
        asyncio.run(send_otp_email("dev@example.com", "012345", "tok-1234"))
