from types import SimpleNamespace
from urllib.parse import parse_qs

import httpx
import pytest

from core.exceptions import NotificationError
from services.email_service import EmailService, quiz_lead_subject

REAL_ASYNC_CLIENT = httpx.AsyncClient


def lead(**overrides):
    data = {
        "id": 7,
        "first_name": "Jamie",
        "email": "jamie@example.com",
        "phone": None,
        "smile_type_name": "Glow-Up Seeker",
        "primary_interest": "whiter",
        "timeline": "asap",
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def mailgun(monkeypatch):
    """Route the service's outgoing HTTP calls to a handler the test controls."""
    calls = []
    state = {"response": httpx.Response(200, json={"id": "<msg-1@mail.test>", "message": "Queued"})}

    def handler(request):
        calls.append(request)
        if isinstance(state["response"], Exception):
            raise state["response"]
        return state["response"]

    def client_factory(*args, **kwargs):
        return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler))

    monkeypatch.setattr("services.email_service.httpx.AsyncClient", client_factory)
    return SimpleNamespace(calls=calls, state=state)


def test_subject_defaults():
    assert quiz_lead_subject("Jamie", "Glow-Up Seeker") == "New Quiz Lead: Jamie - Glow-Up Seeker"
    assert quiz_lead_subject(None, None) == "New Quiz Lead: Anonymous - Smile Assessment"


async def test_send_quiz_notification_posts_to_mailgun(config, mailgun):
    result = await EmailService(config).send_quiz_notification(lead(), ["Porcelain Veneers"])

    assert result["id"] == "<msg-1@mail.test>"
    assert len(mailgun.calls) == 1
    request = mailgun.calls[0]
    assert str(request.url) == "https://mail.test/v3/messages"
    assert request.headers["authorization"].startswith("Basic ")

    form = parse_qs(request.content.decode())
    assert form["to"] == ["front-desk@dentalogix.test"]
    assert form["from"] == ["Dentalogix <hello@dentalogix.test>"]
    assert form["subject"] == ["New Quiz Lead: Jamie - Glow-Up Seeker"]
    html = form["html"][0]
    assert "ASAP - Has an event!" in html
    assert "Brighter, whiter smile" in html
    assert "Porcelain Veneers" in html
    assert "https://dentalogix.test/admin/quiz" in html
    assert "mailto:jamie@example.com" in html


def test_render_keeps_unmapped_values(config):
    html = EmailService(config).render_quiz_notification(
        first_name=None,
        email=None,
        phone="+15555550123",
        smile_type_name=None,
        primary_interest="whiter, straighter",
        timeline=None,
        recommendations=[],
    )
    assert "whiter, straighter" in html
    assert "Not specified" in html
    assert "tel:+15555550123" in html
    assert "Recommended Treatments" not in html


def test_render_escapes_respondent_input(config):
    html = EmailService(config).render_quiz_notification(
        first_name="<script>alert(1)</script>",
        email='jamie@example.com"><b>',
        phone="<i>555</i>",
        smile_type_name="Glow-Up Seeker",
        primary_interest="<img src=x>",
        timeline="soon & <u>later</u>",
        recommendations=["Bonding <Composite>"],
    )
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert 'mailto:jamie@example.com&quot;&gt;&lt;b&gt;"' in html
    assert "<i>" not in html
    assert "<img" not in html
    assert "soon &amp; &lt;u&gt;later&lt;/u&gt;" in html
    assert "Bonding &lt;Composite&gt;" in html


async def test_missing_api_key_is_not_retryable(config, mailgun):
    config.MAILGUN_API_KEY = None
    with pytest.raises(NotificationError) as exc_info:
        await EmailService(config).send_quiz_notification(lead())
    assert exc_info.value.reason == "not_configured"
    assert exc_info.value.retryable is False
    assert mailgun.calls == []


async def test_missing_recipient_is_not_retryable(config, mailgun):
    config.NOTIFICATION_EMAIL = None
    with pytest.raises(NotificationError) as exc_info:
        await EmailService(config).send_quiz_notification(lead())
    assert exc_info.value.reason == "no_recipient"
    assert exc_info.value.retryable is False


async def test_server_error_is_retryable(config, mailgun):
    mailgun.state["response"] = httpx.Response(502, text="bad gateway")
    with pytest.raises(NotificationError) as exc_info:
        await EmailService(config).send_quiz_notification(lead())
    assert exc_info.value.reason == "send_failed"
    assert exc_info.value.retryable is True


async def test_rejected_request_is_not_retryable(config, mailgun):
    mailgun.state["response"] = httpx.Response(400, text="'to' parameter is not a valid address")
    with pytest.raises(NotificationError) as exc_info:
        await EmailService(config).send_quiz_notification(lead())
    assert exc_info.value.retryable is False


async def test_timeout_is_retryable(config, mailgun):
    mailgun.state["response"] = httpx.ReadTimeout("timed out")
    with pytest.raises(NotificationError) as exc_info:
        await EmailService(config).send_quiz_notification(lead())
    assert exc_info.value.retryable is True
    assert exc_info.value.detail == "ReadTimeout"
