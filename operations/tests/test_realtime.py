import json

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import Client

from operations.realtime.consumers import UpdatesConsumer
from operations.services.events import UPDATES_GROUP

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def in_memory_layer(settings):
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}


def communicator_for(user):
    communicator = WebsocketCommunicator(UpdatesConsumer.as_asgi(), "/ws/updates")
    communicator.scope["user"] = user
    return communicator


async def _connect(user):
    communicator = communicator_for(user)
    connected, code = await communicator.connect()
    await communicator.disconnect()
    return connected, code


def test_anonymous_socket_is_closed_with_4001():
    connected, code = async_to_sync(_connect)(AnonymousUser())
    assert connected is False
    assert code == 4001


def test_patient_socket_is_closed_with_4003(make_user):
    patient = make_user("p1", "patient")
    connected, code = async_to_sync(_connect)(patient)
    assert connected is False
    assert code == 4003


def test_staff_receive_welcome_pong_and_events(make_user):
    nurse = make_user("nurse1", "nurse")

    async def scenario():
        communicator = communicator_for(nurse)
        connected, _ = await communicator.connect()
        assert connected
        welcome = json.loads(await communicator.receive_from())
        assert welcome == {"type": "welcome", "message": "connected"}

        await communicator.send_to(text_data=json.dumps({"type": "ping"}))
        assert json.loads(await communicator.receive_from()) == {"type": "pong"}

        await get_channel_layer().group_send(UPDATES_GROUP, {
            "type": "dashboard.event", "event": "bed.updated", "bed_id": 7, "status": "occupied",
        })
        event = json.loads(await communicator.receive_from())
        await communicator.disconnect()
        return event

    event = async_to_sync(scenario)()
    assert event == {"type": "event", "event": "bed.updated", "bed_id": 7, "status": "occupied"}


def test_healthz_reports_db_and_cache():
    r = Client().get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "db": True, "cache": True}
