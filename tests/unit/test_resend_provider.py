import asyncio
import time

import pytest
import resend

from servicehub.notifications import NotificationError, ProviderAuthError
from servicehub.notifications.providers import ResendEmailProvider


class ResendFailure(Exception):
    def __init__(self, message, code):
        super().__init__(message)
        self.code = code


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_send(params):
        key = resend.api_key
        # Give another thread the chance to swap the global key mid-send
        time.sleep(0.02)
        calls.append({"key_at_start": key, "key_at_end": resend.api_key, **params})
        return {"id": f"email-{len(calls)}"}

    monkeypatch.setattr(resend.Emails, "send", fake_send)
    return calls


@pytest.mark.asyncio
async def test_each_workspace_sends_with_its_own_key(sent):
    provider = ResendEmailProvider(default_api_key="re_platform", default_from="hello@servicehub.test")

    await asyncio.gather(
        provider.send("ada@example.com", "Welcome!", "Hi Ada", {"api_key": "re_sparkle"}),
        provider.send("grace@example.com", "Welcome!", "Hi Grace", {"api_key": "re_shine"}),
        provider.send("alan@example.com", "Welcome!", "Hi Alan", {}),
    )

    keys = {call["to"][0]: (call["key_at_start"], call["key_at_end"]) for call in sent}
    assert keys == {
        "ada@example.com": ("re_sparkle", "re_sparkle"),
        "grace@example.com": ("re_shine", "re_shine"),
        "alan@example.com": ("re_platform", "re_platform"),
    }


@pytest.mark.asyncio
async def test_sends_rendered_html_and_plain_text(sent):
    provider = ResendEmailProvider(default_api_key="re_platform", default_from="hello@servicehub.test")

    message_id = await provider.send("ada@example.com", None, "Your visit is at 9", {"from_address": "team@sparkle.test"})

    assert message_id == "email-1"
    [call] = sent
    assert call["from"] == "team@sparkle.test"
    assert call["subject"] == "Notification"
    assert call["text"] == "Your visit is at 9"
    assert "Your visit is at 9" in call["html"]


@pytest.mark.asyncio
async def test_missing_key_is_a_config_error():
    provider = ResendEmailProvider(default_api_key=None)

    with pytest.raises(ProviderAuthError) as exc_info:
        await provider.send("ada@example.com", "Hi", "Hi", {})

    assert exc_info.value.code == "RESEND_NOT_CONFIGURED"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, error_type, retryable",
    [("401", ProviderAuthError, False), ("500", NotificationError, True)],
)
async def test_sdk_errors_are_classified(monkeypatch, code, error_type, retryable):
    def failing_send(params):
        raise ResendFailure("rejected", code)

    monkeypatch.setattr(resend.Emails, "send", failing_send)
    provider = ResendEmailProvider(default_api_key="re_platform")

    with pytest.raises(error_type) as exc_info:
        await provider.send("ada@example.com", "Hi", "Hi", {})

    assert exc_info.value.code == code
    assert exc_info.value.retryable is retryable
