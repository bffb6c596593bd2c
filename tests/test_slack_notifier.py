import asyncio

import httpx

from codescore.config import Settings
from codescore.models import Submission
from codescore.slack_notifier import build_message, send_slack_alert, should_alert

RISKY = "def run(data):\n    value = eval(data)\n    return value\n"
CLEAN = "def f(x):\n    return x+1\n"


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "ok") -> None:
        self.status_code = status_code
        self.text = text


class FakeAsyncClient:
    calls: list = []
    status_code = 200

    def __init__(self, *args, **kwargs) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def post(self, url, json=None):
        FakeAsyncClient.calls.append((url, json))
        return FakeResponse(FakeAsyncClient.status_code)


def _settings(**overrides) -> Settings:
    values = {"slack_webhook_url": "https://hooks.slack.test/T000/B000", "_env_file": None}
    values.update(overrides)
    return Settings(**values)


def _review(engine, code: str):
    return engine.review(Submission(source_text=code, language="python", filename="job.py"))


def test_alert_rules(engine) -> None:
    assert should_alert(_review(engine, RISKY), threshold=60) is True
    assert should_alert(_review(engine, CLEAN), threshold=60) is False
    assert should_alert(_review(engine, CLEAN), threshold=101) is True


def test_message_blocks(engine) -> None:
    message = build_message(_review(engine, RISKY))

    header, section, context = message["blocks"]
    assert header["text"]["text"].startswith("codescore Alert: job.py scored")
    assert "*Errors:* 1" in section["text"]["text"]
    assert "security" in context["elements"][0]["text"]


def test_sends_alert_for_errors(engine, monkeypatch) -> None:
    FakeAsyncClient.calls = []
    FakeAsyncClient.status_code = 200
    monkeypatch.setattr("codescore.slack_notifier.httpx.AsyncClient", FakeAsyncClient)

    sent = asyncio.run(send_slack_alert(_review(engine, RISKY), _settings()))

    assert sent is True
    url, payload = FakeAsyncClient.calls[0]
    assert url == "https://hooks.slack.test/T000/B000"
    assert len(payload["blocks"]) == 3


def test_skips_when_disabled_or_not_needed(engine, monkeypatch) -> None:
    FakeAsyncClient.calls = []
    monkeypatch.setattr("codescore.slack_notifier.httpx.AsyncClient", FakeAsyncClient)

    assert asyncio.run(send_slack_alert(_review(engine, RISKY), _settings(slack_enabled=False))) is False
    assert asyncio.run(send_slack_alert(_review(engine, RISKY), _settings(slack_webhook_url=""))) is False
    assert asyncio.run(send_slack_alert(_review(engine, CLEAN), _settings())) is False
    assert FakeAsyncClient.calls == []


def test_webhook_failure_returns_false(engine, monkeypatch) -> None:
    FakeAsyncClient.calls = []
    FakeAsyncClient.status_code = 500
    monkeypatch.setattr("codescore.slack_notifier.httpx.AsyncClient", FakeAsyncClient)

    assert asyncio.run(send_slack_alert(_review(engine, RISKY), _settings())) is False


def test_transport_error_returns_false(engine, monkeypatch) -> None:
    class FailingClient(FakeAsyncClient):
        async def post(self, url, json=None):
            raise httpx.ConnectError("connection refused")

    monkeypatch.setattr("codescore.slack_notifier.httpx.AsyncClient", FailingClient)

    assert asyncio.run(send_slack_alert(_review(engine, RISKY), _settings())) is False
