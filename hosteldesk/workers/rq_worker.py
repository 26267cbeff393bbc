# hosteldesk/workers/rq_worker.py
import argparse
import asyncio
import hashlib
import hmac
import json
import logging
import os
from typing import Any, Callable, Mapping

import redis
import requests
from rq import Queue, Worker

from hosteldesk.core.config import settings
from hosteldesk.core.logging import setup_logging
from hosteldesk.services.notifications import enqueue_escalation_scan

logger = logging.getLogger("worker.notifications")


def _sign(payload: Mapping[str, Any]) -> str | None:
    if not settings.webhook_secret:
        return None
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hmac.new(settings.webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _post(event_type: str, payload: Mapping[str, Any]) -> None:
    url = settings.webhook_url
    if not url:
        logger.debug("webhook_url_missing", extra={"event_type": event_type})
        return
    headers = {"Content-Type": "application/json", "X-HostelDesk-Event": event_type}
    sig = _sign(payload)
    if sig:
        headers["X-HostelDesk-Signature"] = f"sha256={sig}"
    r = requests.post(url, json=payload, headers=headers, timeout=10)
    logger.info("webhook_sent", extra={"event_type": event_type, "status": r.status_code})


def on_ticket_created(payload: Mapping[str, Any]) -> None:
    logger.info("ticket_created", extra={
        "ticket_id": payload.get("ticket_id"),
        "ticket_number": payload.get("ticket_number"),
        "created_by": payload.get("created_by"),
    })


def on_status_changed(payload: Mapping[str, Any]) -> None:
    logger.info("status_changed", extra={
        "ticket_id": payload.get("ticket_id"),
        "from": payload.get("from"),
        "to": payload.get("to"),
    })


def on_ticket_assigned(payload: Mapping[str, Any]) -> None:
    logger.info("ticket_assigned", extra={
        "ticket_id": payload.get("ticket_id"),
        "assigned_to": payload.get("assigned_to"),
    })


def on_ticket_escalated(payload: Mapping[str, Any]) -> None:
    logger.info("ticket_escalated", extra={
        "ticket_id": payload.get("ticket_id"),
        "level": payload.get("level"),
        "auto": payload.get("auto"),
    })


EVENT_HANDLERS: dict[str, Callable[[Mapping[str, Any]], None]] = {
    "ticket_created": on_ticket_created,
    "status_changed": on_status_changed,
    "ticket_assigned": on_ticket_assigned,
    "ticket_escalated": on_ticket_escalated,
}


def handle_event(event_type: str, payload: Mapping[str, Any] | None = None) -> None:
    handler = EVENT_HANDLERS.get(event_type)
    if not handler:
        logger.warning("unknown_event", extra={"event_type": event_type})
        return
    handler(payload or {})
    _post(event_type, payload or {})


def run_escalation_scan() -> int:
    """Авто-ескалації поза HTTP: напряму (`scan`) або як rq-job (`enqueue-scan`)."""
    from hosteldesk.db.session import AsyncSessionLocal
    from hosteldesk.services.escalations import process_automatic_escalations

    async def _run() -> int:
        async with AsyncSessionLocal() as db:
            created = await process_automatic_escalations(db)
            return len(created)

    count = asyncio.run(_run())
    logger.info("escalation_scan_done", extra={"escalations": count})
    return count


def main() -> None:
    parser = argparse.ArgumentParser(description="HostelDesk background jobs")
    parser.add_argument("command", nargs="?", choices=["work", "scan", "enqueue-scan"], default="work")
    args = parser.parse_args()

    setup_logging(settings.log_level)
    if args.command == "scan":
        run_escalation_scan()
        return
    if args.command == "enqueue-scan":
        enqueue_escalation_scan()
        return

    logger.info("worker_starting", extra={"queue": settings.notifications_queue, "redis": settings.redis_url})
    conn = redis.from_url(settings.redis_url)
    queue = Queue(settings.notifications_queue, connection=conn)
    worker = Worker([queue], connection=conn, name=os.getenv("WORKER_NAME", "notifications-worker"))
    worker.work(logging_level=logging.INFO)


if __name__ == "__main__":
    main()
