"""Tests for application wiring and the debug GUI bridge."""

import asyncio
import json
from unittest.mock import patch

from campusnav.app import CampusNavigator
from campusnav.debug_gui import DebugServer, WebSocketSensor
from campusnav.errors import SensorDenied, SensorTimeout, SensorUnavailable
from campusnav.models import GeoPoint, Phase, PixelPoint
from tests.conftest import FakeSensor, sample_at


class TestDebugServer:
    """Tests for turning browser clicks into positions."""

    def test_location_click(self, mapper):
        """A plain click becomes a simulated sample at the clicked pixel."""
        server = DebugServer(mapper)
        server.handle_message(json.dumps({"type": "location", "data": {"x": 1000, "y": 2000}}))
        sample = server.get_clicked_location(timeout=0)
        assert sample.simulated
        assert sample.accuracy == 0
        assert sample.point == mapper.to_geo(PixelPoint(1000, 2000))

    def test_destination_click(self, mapper):
        """A shift-click queues a destination."""
        server = DebugServer(mapper)
        server.handle_message(json.dumps({"type": "destination", "data": {"x": 500, "y": 600}}))
        assert server.poll_destination() == mapper.to_geo(PixelPoint(500, 600))
        assert server.poll_destination() is None

    def test_malformed_message_ignored(self, mapper):
        """Garbage from the socket is dropped."""
        server = DebugServer(mapper)
        server.handle_message("not json")
        server.handle_message(json.dumps({"type": "location", "data": {}}))
        assert server.get_clicked_location(timeout=0) is None

    def test_retry_message(self, mapper):
        """A Retry GPS press is reported once."""
        server = DebugServer(mapper)
        assert not server.poll_retry()
        server.handle_message(json.dumps({"type": "retry"}))
        assert server.poll_retry()
        assert not server.poll_retry()

    async def test_websocket_sensor_one_shot(self, mapper):
        """A queued click answers the one-shot request."""
        server = DebugServer(mapper)
        server.handle_message(json.dumps({"type": "location", "data": {"x": 1000, "y": 2000}}))
        samples = []
        WebSocketSensor(server).get_current_sample(samples.append, samples.append)
        for _ in range(20):
            if samples:
                break
            await asyncio.sleep(0.05)
        assert samples[0].simulated


class TestCampusNavigator:
    """Tests for wiring the session together."""

    def _navigator(self, sensor):
        navigator = CampusNavigator(voice=False, load_map=False)
        navigator.logger.echo = False
        navigator.set_sensor(sensor)
        navigator.initialize()
        return navigator

    async def test_acquire_position(self):
        """A successful probe feeds the session."""
        sensor = FakeSensor(current=sample_at(18.5226207, 73.7307949))
        navigator = self._navigator(sensor)
        assert await navigator.acquire_position()
        assert navigator.session.phase is Phase.TRACKING

    async def test_permission_denied_stops(self, capsys):
        """A denied permission ends the run with setup instructions."""
        navigator = self._navigator(FakeSensor(current=SensorDenied("denied")))
        with patch.object(navigator.audio, "announce") as mock_announce:
            assert not await navigator.acquire_position()
        mock_announce.assert_called_once()
        assert "Termux:API" in capsys.readouterr().out

    async def test_transient_error_continues(self):
        """A timeout is not fatal; the tracker keeps waiting."""
        navigator = self._navigator(FakeSensor(current=SensorTimeout()))
        assert await navigator.acquire_position()

    def test_live_permission_denial_prompts_once(self, capsys):
        """A denial arriving through the subscription shows setup help once."""
        sensor = FakeSensor()
        navigator = self._navigator(sensor)
        with navigator.session, patch.object(navigator.audio, "announce") as mock_announce:
            sensor.fail(SensorDenied("denied"))
            sensor.fail(SensorDenied("denied"))
        mock_announce.assert_called_once_with("Location permission denied")
        assert capsys.readouterr().out.count("Termux:API") == 1

    def test_live_unavailable_shows_fallback(self, capsys):
        """Losing the location capability mid-run explains the fallback."""
        sensor = FakeSensor()
        navigator = self._navigator(sensor)
        with navigator.session, patch.object(navigator.audio, "announce") as mock_announce:
            sensor.fail(SensorUnavailable("gone"))
        mock_announce.assert_not_called()
        assert "simulated campus position" in capsys.readouterr().out

    def test_transient_live_error_has_no_redirect(self, capsys):
        """Timeouts are logged but need no setup help."""
        sensor = FakeSensor()
        navigator = self._navigator(sensor)
        with navigator.session:
            sensor.fail(SensorTimeout())
        assert "Termux:API" not in capsys.readouterr().out

    def test_debug_retry_resubscribes(self, mapper):
        """Retry GPS in the debug GUI drops and renews the subscription."""
        sensor = FakeSensor()
        navigator = self._navigator(sensor)
        navigator.debug_server = DebugServer(mapper)
        with navigator.session:
            navigator.debug_server.handle_message(json.dumps({"type": "retry"}))
            navigator._poll_debug_retry()
            assert sensor.subscribe_calls == 2
            assert sensor.unsubscribe_calls == 1
            assert len(sensor.subscriptions) == 1
            assert navigator.tracker.retry_attempts == 1

            navigator._poll_debug_retry()
            assert sensor.subscribe_calls == 2

    def test_arrival_marks_navigator(self):
        """The phase listener notices arrival."""
        sensor = FakeSensor()
        navigator = self._navigator(sensor)
        navigator.session.on_position(sample_at(18.5245120, 73.7298450))
        navigator.session.select_destination(GeoPoint(18.5245123, 73.7298456))
        navigator.session.start_navigation()
        assert navigator.arrived
        assert navigator.get_state()["phase"] == "arrived"
