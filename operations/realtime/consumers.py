import json
import logging

from channels.generic.websocket import AsyncWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from operations.permissions import STAFF_ROLES
from operations.services.events import UPDATES_GROUP

logger = logging.getLogger(__name__)


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes bed, order and appointment changes to open dashboards."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        user = self.scope.get("user") or AnonymousUser()
        if not user.is_authenticated:
            await self.close(code=4001)
            return
        if getattr(user, "role", None) not in STAFF_ROLES:
            await self.close(code=4003)
            return
        self.joined = True
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        if getattr(self, "joined", False):
            await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        # Clients only ever send keepalive pings.
        try:
            data = json.loads(text_data or "{}")
        except ValueError:
            logger.debug("ignoring non-JSON websocket frame")
            return
        if data.get("type") == "ping":
            await self.send(json.dumps({"type": "pong"}))

    async def dashboard_event(self, event):
        # event: {"type": "dashboard.event", "event": "bed.updated", "ts": "...", ...}
        payload = {k: v for k, v in event.items() if k != "type"}
        await self.send(json.dumps({"type": "event", **payload}))
