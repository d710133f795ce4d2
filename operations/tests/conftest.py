import heapq
import itertools

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from operations.console.timers import Scheduler, TimerHandle


@pytest.fixture(autouse=True)
def _isolated_state(settings, tmp_path):
    # Throttle counters and cached statistics live in the cache.
    cache.clear()
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.AI_API_KEY = ""
    settings.CHECKOUT_KEY_SECRET = ""
    yield
    cache.clear()


@pytest.fixture
def make_user(db, django_user_model):
    def _make(username, role, password="P@ssw0rd1", **extra):
        return django_user_model.objects.create_user(username=username, password=password, role=role, **extra)
    return _make


@pytest.fixture
def client_for():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client


class _Handle(TimerHandle):
    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self):
        return self._cancelled


class ManualScheduler(Scheduler):
    """Virtual clock: nothing fires until :meth:`advance` moves time forward."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback):
        handle = _Handle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback, None))
        return handle

    def call_every(self, interval, callback):
        handle = _Handle()
        heapq.heappush(self._queue, (self.now + interval, next(self._seq), handle, callback, interval))
        return handle

    def advance(self, seconds):
        until = self.now + seconds
        while self._queue and self._queue[0][0] <= until:
            at, _, handle, callback, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = at
            if interval is not None:
                heapq.heappush(self._queue, (at + interval, next(self._seq), handle, callback, interval))
            callback()
        self.now = until

    def pending(self):
        return sum(1 for entry in self._queue if not entry[2].cancelled)


@pytest.fixture
def scheduler():
    return ManualScheduler()
