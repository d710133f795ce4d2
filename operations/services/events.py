"""Broadcast dashboard refresh events to websocket subscribers."""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

UPDATES_GROUP = "updates"


def broadcast(event: str, **payload) -> None:
    """Send ``event`` (e.g. ``bed.updated``) once the current transaction commits."""
    def _send():
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        message = {"type": "dashboard.event", "event": event, "ts": timezone.now().isoformat(), **payload}
        try:
            async_to_sync(channel_layer.group_send)(UPDATES_GROUP, message)
        except Exception:
            logger.warning("broadcast of %s failed", event, exc_info=True)

    transaction.on_commit(_send)
