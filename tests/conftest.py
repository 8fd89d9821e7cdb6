"""Pytest configuration and fixtures."""

import itertools

import pytest

from campusnav.config import CAMPUS_ANCHORS
from campusnav.gps import PositionTracker
from campusnav.mapper import CoordinateMapper
from campusnav.models import GeoPoint, PositionSample
from campusnav.navigation import NavigationSession


# =============================================================================
# Fakes
# =============================================================================


class FakeSensor:
    """Sensor driven by the test: emit() and fail() deliver to live subscriptions."""

    def __init__(self, current=None):
        self.current = current  # PositionSample or SensorError for get_current_sample
        self.subscriptions = {}
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0
        self.current_requests = 0
        self._ids = itertools.count(1)

    def subscribe(self, on_sample, on_error, options=None):
        self.subscribe_calls += 1
        handle = next(self._ids)
        self.subscriptions[handle] = (on_sample, on_error)
        return handle

    def unsubscribe(self, handle):
        self.unsubscribe_calls += 1
        self.subscriptions.pop(handle, None)

    def get_current_sample(self, on_sample, on_error, options=None):
        self.current_requests += 1
        if self.current is None:
            return  # never answers
        if isinstance(self.current, PositionSample):
            on_sample(self.current)
        else:
            on_error(self.current)

    def emit(self, sample):
        for on_sample, _ in list(self.subscriptions.values()):
            on_sample(sample)

    def fail(self, error):
        for _, on_error in list(self.subscriptions.values()):
            on_error(error)


class FakeSpeech:
    """Records announced text instead of speaking it"""

    def __init__(self):
        self.spoken = []

    def announce(self, text):
        self.spoken.append(text)


class FakeClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def sample_at(lat, lng, accuracy=5.0, heading=None):
    return PositionSample(point=GeoPoint(lat=lat, lng=lng), accuracy=accuracy, heading=heading)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mapper():
    return CoordinateMapper(CAMPUS_ANCHORS)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sensor():
    return FakeSensor()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def tracker(sensor, clock):
    return PositionTracker(sensor, clock=clock, fallback=GeoPoint(18.5251234, 73.7285678))


@pytest.fixture
def session(mapper, tracker, speech, clock):
    """Open session wired to the fake sensor, speech and clock"""
    nav = NavigationSession(mapper, tracker=tracker, speech=speech, clock=clock)
    nav.open()
    yield nav
    nav.close()


@pytest.fixture
def events(session):
    """List of (event, data) tuples delivered by the session"""
    received = []
    session.add_listener(lambda event, data: received.append((event, data)))
    return received
