import hashlib
import hmac
import json

from hosteldesk.core.config import settings
from hosteldesk.services import notifications
from hosteldesk.workers import rq_worker


class _FakeJob:
    id = "job-1"


class _FakeQueue:
    def __init__(self):
        self.calls = []

    def enqueue(self, func, *args, **kwargs):
        self.calls.append((func, args, kwargs))
        return _FakeJob()


class _BrokenQueue:
    def enqueue(self, *args, **kwargs):
        raise ConnectionError("redis is down")


def test_enqueue_disabled_returns_none():
    assert settings.notifications_enabled is False
    assert notifications.enqueue("ticket_created", {"ticket_id": 1}) is None


def test_enqueue_returns_job_id(monkeypatch):
    q = _FakeQueue()
    monkeypatch.setattr(settings, "notifications_enabled", True)
    monkeypatch.setattr(notifications, "_get_queue", lambda: q)

    assert notifications.enqueue("ticket_assigned", {"ticket_id": 7, "assigned_to": 3}) == "job-1"
    func, args, kwargs = q.calls[0]
    assert func == "hosteldesk.workers.rq_worker.handle_event"
    assert args == ("ticket_assigned", {"ticket_id": 7, "assigned_to": 3})
    assert kwargs["job_timeout"] == 60


def test_enqueue_failure_does_not_raise(monkeypatch):
    monkeypatch.setattr(settings, "notifications_enabled", True)
    monkeypatch.setattr(notifications, "_get_queue", lambda: _BrokenQueue())
    assert notifications.enqueue("ticket_created", {"ticket_id": 1}) is None


class _Resp:
    status_code = 204


def test_handle_event_posts_signed_webhook(monkeypatch):
    sent = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        sent.update(url=url, json=json, headers=headers)
        return _Resp()

    monkeypatch.setattr(settings, "webhook_url", "https://hooks.example.com/desk")
    monkeypatch.setattr(settings, "webhook_secret", "s3cret")
    monkeypatch.setattr(rq_worker.requests, "post", fake_post)

    payload = {"ticket_id": 5, "from": "OPEN", "to": "ASSIGNED"}
    rq_worker.handle_event("status_changed", payload)

    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
    assert sent["url"] == "https://hooks.example.com/desk"
    assert sent["headers"]["X-HostelDesk-Event"] == "status_changed"
    assert sent["headers"]["X-HostelDesk-Signature"] == f"sha256={expected}"


def test_unknown_event_is_ignored(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("webhook must not be called")

    monkeypatch.setattr(settings, "webhook_url", "https://hooks.example.com/desk")
    monkeypatch.setattr(rq_worker.requests, "post", fail)
    rq_worker.handle_event("something_else", {"x": 1})


def test_no_webhook_url_skips_post(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("webhook must not be called")

    monkeypatch.setattr(settings, "webhook_url", None)
    monkeypatch.setattr(rq_worker.requests, "post", fail)
    rq_worker.handle_event("ticket_created", {"ticket_id": 1})


def test_escalation_scan_is_enqueued_as_job(monkeypatch):
    q = _FakeQueue()
    monkeypatch.setattr(notifications, "_get_queue", lambda: q)

    assert notifications.enqueue_escalation_scan() == "job-1"
    func, args, kwargs = q.calls[0]
    assert func == "hosteldesk.workers.rq_worker.run_escalation_scan"
    assert args == ()
    # рядок має вказувати на справжню функцію воркера
    module, _, name = func.rpartition(".")
    assert module == rq_worker.__name__ and callable(getattr(rq_worker, name))


def test_worker_enqueue_scan_command(monkeypatch):
    calls = []
    monkeypatch.setattr("sys.argv", ["hosteldesk-worker", "enqueue-scan"])
    monkeypatch.setattr(rq_worker, "setup_logging", lambda level: None)
    monkeypatch.setattr(rq_worker, "enqueue_escalation_scan", lambda: calls.append("scan") or "job-1")
    monkeypatch.setattr(rq_worker, "run_escalation_scan", lambda: calls.append("direct") or 0)

    rq_worker.main()
    assert calls == ["scan"]
