"""
Notification Service - fire-and-forget delivery of workflow events

Events are always logged. When NOTIFY_WEBHOOK_URL is configured they are
also POSTed as JSON. Delivery failures are logged and never propagate to
the business operation that produced the event.
"""
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

import httpx
from sqlalchemy.orm import Session

from stockflow.core import settings, on_commit
from stockflow.core.exceptions import DependencyFailure

logger = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    def send(event: str, payload: Dict[str, Any], webhook_url: Optional[str] = None) -> bool:
        """Deliver one event now. Returns False if delivery failed."""
        logger.info(f"[notify] {event}: {payload}")

        url = webhook_url or settings.NOTIFY_WEBHOOK_URL
        if not url:
            return True

        body = {
            "event": event,
            "payload": payload,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            response = httpx.post(url, json=body, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
            response.raise_for_status()
        except httpx.HTTPError as e:
            failure = DependencyFailure(f"Notification {event} failed", {"error": str(e)})
            logger.error(f"{failure.message}: {failure.details}")
            return False
        return True

    @staticmethod
    def notify_after_commit(db: Session, event: str, payload: Dict[str, Any]) -> None:
        """Queue an event until the caller's unit of work commits; dropped on rollback"""
        on_commit(db, lambda: NotificationService.send(event, payload))
