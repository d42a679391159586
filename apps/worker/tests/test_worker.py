from types import SimpleNamespace

from oneclicktag_worker import main as worker_main
from oneclicktag_worker.main import email_bulk_send, ping

from app.errors import InvalidDataError
from app.models import EmailTemplateType


class _DummySession:
    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_ping_task() -> None:
    assert ping() == "pong"


def test_bulk_send_task_reports_counts(monkeypatch) -> None:
    calls: list[tuple[EmailTemplateType, str | None]] = []

    async def _fake_bulk_send(db, template_type, *, mailer, subject=None):  # noqa: ANN001
        calls.append((template_type, subject))
        return SimpleNamespace(sent=3, failed=1, total=4, errors=["Failed to send to x@example.com: boom"])

    monkeypatch.setattr(worker_main, "SessionLocal", lambda: _DummySession())
    monkeypatch.setattr(worker_main, "bulk_send", _fake_bulk_send)
    monkeypatch.setattr(worker_main, "get_mailer", lambda: object())

    result = email_bulk_send("LEAD_WELCOME", "Hello")

    assert calls == [(EmailTemplateType.LEAD_WELCOME, "Hello")]
    assert result == {"sent": 3, "failed": 1, "total": 4, "errors": ["Failed to send to x@example.com: boom"]}


def test_bulk_send_task_without_subscribers_returns_empty(monkeypatch) -> None:
    async def _no_subscribers(db, template_type, *, mailer, subject=None):  # noqa: ANN001
        raise InvalidDataError("No subscribers to send emails to")

    monkeypatch.setattr(worker_main, "SessionLocal", lambda: _DummySession())
    monkeypatch.setattr(worker_main, "bulk_send", _no_subscribers)
    monkeypatch.setattr(worker_main, "get_mailer", lambda: object())

    result = email_bulk_send("CUSTOM")

    assert result["total"] == 0
    assert result["errors"] == ["No subscribers to send emails to"]
