# hosteldesk/services/notifications.py
import logging
from typing import Any, Mapping

import redis
from rq import Queue, Retry

from hosteldesk.core.config import settings

log = logging.getLogger(__name__)

_queue: Queue | None = None


def _get_queue() -> Queue:
    global _queue
    if _queue is None:
        _queue = Queue(settings.notifications_queue, connection=redis.from_url(settings.redis_url))
    return _queue


def enqueue(event_type: str, payload: Mapping[str, Any]) -> str | None:
    """
    Кладемо подію в чергу: у воркері її обробляє handle_event.
    Повертає job.id або None (вимкнено / помилка), щоб не валити HTTP-запит.
    """
    if not settings.notifications_enabled:
        log.debug("notifications_disabled", extra={"event_type": event_type})
        return None

    try:
        job = _get_queue().enqueue(
            "hosteldesk.workers.rq_worker.handle_event",
            event_type,
            dict(payload),
            job_timeout=60,
            retry=Retry(max=3, interval=[5, 15, 30]),
        )
        return getattr(job, "id", None)
    except Exception as e:
        # Логуємо й не піднімаємо виняток, щоб UI не отримував 500
        log.exception("Failed to enqueue event '%s': %s", event_type, e)
        return None


def enqueue_escalation_scan() -> str:
    """
    Ставить авто-ескалацію в ту саму чергу (cron: `hosteldesk-worker enqueue-scan`).
    На відміну від подій, помилку Redis не ховаємо: виклик іде з CLI.
    """
    job = _get_queue().enqueue(
        "hosteldesk.workers.rq_worker.run_escalation_scan",
        job_timeout=300,
    )
    log.info("escalation_scan_enqueued", extra={"job_id": job.id})
    return job.id
