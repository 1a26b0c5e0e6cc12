import httpx
import pytest

from swophere.core.exceptions import InternalError
from swophere.services import AgreementEmailNotifications, GraphEmailClient as graph_module
from swophere.services.GraphEmailClient import GraphEmailClient, build_mail_payload


@pytest.fixture
def configured_client(monkeypatch):
    client = GraphEmailClient(
        tenant_id="tenant",
        client_id="client",
        client_secret="secret",
        default_sender="no-reply@swophere.com",
    )
    monkeypatch.setattr(AgreementEmailNotifications, "graph_client", client)
    return client


def mock_graph(monkeypatch, handler):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        graph_module.httpx,
        "AsyncClient",
        lambda: real_client(transport=httpx.MockTransport(handler)),
    )


async def test_skipped_when_not_configured(monkeypatch):
    unconfigured = GraphEmailClient("", "", "", "no-reply@swophere.com")
    monkeypatch.setattr(AgreementEmailNotifications, "graph_client", unconfigured)

    result = await AgreementEmailNotifications.notify_agreement_proposed(
        recipient_email="bob@example.com",
        recipient_name="Bob",
        from_user="alice",
        agreement_title="Guitar",
        swop_id="SKILL_SWOP_1_abc",
    )
    assert result["status"] == "skipped"


async def test_skipped_without_recipient(configured_client):
    result = await AgreementEmailNotifications.notify_agreement_proposed(
        recipient_email=None,
        recipient_name="Bob",
        from_user="alice",
        agreement_title="Guitar",
        swop_id="SKILL_SWOP_1_abc",
    )
    assert result["status"] == "skipped"


async def test_proposed_email_is_rendered_and_sent(configured_client, monkeypatch):
    sent = {}

    async def fake_send_email(to_emails, subject, body_html, reply_to=None):
        sent.update(to=to_emails, subject=subject, body=body_html)
        return {"status": "sent"}

    monkeypatch.setattr(configured_client, "send_email", fake_send_email)

    result = await AgreementEmailNotifications.notify_agreement_proposed(
        recipient_email="bob@example.com",
        recipient_name="Bob <Baker>",
        from_user="alice",
        agreement_title="Guitar & Spanish",
        swop_id="SKILL_SWOP_1_abc",
    )

    assert result == {"status": "sent", "email": "bob@example.com"}
    assert sent["to"] == ["bob@example.com"]
    assert sent["subject"] == "New skill swap agreement from alice"
    assert "Bob &lt;Baker&gt;" in sent["body"]
    assert "Guitar &amp; Spanish" in sent["body"]
    assert "/agreement/SKILL_SWOP_1_abc" in sent["body"]


async def test_declined_email_includes_reason(configured_client, monkeypatch):
    sent = {}

    async def fake_send_email(to_emails, subject, body_html, reply_to=None):
        sent.update(subject=subject, body=body_html)
        return {"status": "sent"}

    monkeypatch.setattr(configured_client, "send_email", fake_send_email)

    await AgreementEmailNotifications.notify_agreement_response(
        creator_email="alice@example.com",
        creator_name="Alice",
        responder="bob",
        agreement_title="Guitar",
        swop_id="SKILL_SWOP_1_abc",
        accepted=False,
        reason="Too busy",
    )

    assert sent["subject"] == "bob declined your skill swap agreement"
    assert "Too busy" in sent["body"]


async def test_send_failures_are_swallowed(configured_client, monkeypatch):
    async def failing_send_email(*args, **kwargs):
        raise InternalError("Failed to send email: 500")

    monkeypatch.setattr(configured_client, "send_email", failing_send_email)

    result = await AgreementEmailNotifications.notify_agreement_response(
        creator_email="alice@example.com",
        creator_name="Alice",
        responder="bob",
        agreement_title="Guitar",
        swop_id="SKILL_SWOP_1_abc",
        accepted=True,
    )
    assert result["status"] == "failed"


async def test_graph_client_retries_once_on_403(configured_client, monkeypatch):
    calls = {"token": 0, "send": 0}

    def handler(request):
        if "oauth2" in request.url.path:
            calls["token"] += 1
            return httpx.Response(200, json={"access_token": f"token-{calls['token']}", "expires_in": 3600})
        calls["send"] += 1
        if calls["send"] == 1:
            return httpx.Response(403)
        assert request.headers["Authorization"] == "Bearer token-2"
        return httpx.Response(202)

    mock_graph(monkeypatch, handler)

    result = await configured_client.send_email(["bob@example.com"], "Hi", "<p>Hi</p>")

    assert result["status"] == "sent"
    assert calls == {"token": 2, "send": 2}


async def test_graph_client_reuses_cached_token(configured_client, monkeypatch):
    calls = {"token": 0}

    def handler(request):
        if "oauth2" in request.url.path:
            calls["token"] += 1
            return httpx.Response(200, json={"access_token": "cached", "expires_in": 3600})
        return httpx.Response(202)

    mock_graph(monkeypatch, handler)

    await configured_client.send_email(["bob@example.com"], "One", "<p>1</p>")
    await configured_client.send_email(["bob@example.com"], "Two", "<p>2</p>")

    assert calls["token"] == 1


async def test_graph_client_raises_on_error_status(configured_client, monkeypatch):
    def handler(request):
        if "oauth2" in request.url.path:
            return httpx.Response(200, json={"access_token": "t", "expires_in": 3600})
        return httpx.Response(500, text="boom")

    mock_graph(monkeypatch, handler)

    with pytest.raises(InternalError):
        await configured_client.send_email(["bob@example.com"], "Hi", "<p>Hi</p>")


def test_mail_payload():
    payload = build_mail_payload(["a@example.com", "b@example.com"], "Hi", "<p>Hi</p>", reply_to="r@example.com")
    assert payload["saveToSentItems"] == "false"
    message = payload["message"]
    assert message["body"] == {"contentType": "HTML", "content": "<p>Hi</p>"}
    assert [r["emailAddress"]["address"] for r in message["toRecipients"]] == ["a@example.com", "b@example.com"]
    assert message["replyTo"] == [{"emailAddress": {"address": "r@example.com"}}]
    assert "replyTo" not in build_mail_payload(["a@example.com"], "Hi", "")["message"]
