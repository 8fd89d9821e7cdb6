"""Main Campus Navigator application."""

import asyncio
import time
from typing import Optional

from .audio import Audio
from .campus_map import CampusMap, MapFetcher
from .config import CAMPUS_ANCHORS, CONFIG
from .debug_gui import DebugServer
from .errors import MapLoadError, OutOfBoundsSelection, SensorError
from .geo import format_distance, format_duration, retry_with_backoff
from .gps import PlaybackSensor, PositionTracker, SensorRecorder, TermuxLocationSensor, TrackerUpdate
from .logger import Logger
from .mapper import CoordinateMapper
from .models import GeoPoint, Phase
from .navigation import NavigationSession

TROUBLESHOOTING = {
    "permission_setup": [
        "Location permission was denied.",
        "  1. Install the Termux:API app and run: pkg install termux-api",
        "  2. Grant Termux:API the location permission in Android settings",
        "  3. Make sure location services are switched on",
    ],
    "fallback": [
        "Live location is not available on this device.",
        "  Showing the simulated campus position instead.",
        "  Use --debug-gui or --playback to drive the position manually.",
    ],
}


class CampusNavigator:
    """Main application"""

    def __init__(self, log_path: Optional[str] = None, debug_gui: bool = False,
                 voice: bool = True, load_map: bool = True):
        self.audio = Audio()
        self.voice = voice
        self.load_map = load_map
        self.campus_map: Optional[CampusMap] = None
        self.mapper = CoordinateMapper(CAMPUS_ANCHORS)

        # Debug GUI server, started once the map is loaded
        self.debug_server: Optional[DebugServer] = None
        if debug_gui:
            self.debug_server = DebugServer(self.mapper)
            Audio.set_callback(self.debug_server.send_audio)

        # Logger with optional callback for debug GUI
        log_callback = self.debug_server.send_log if self.debug_server else None
        self.logger = Logger(log_path, callback=log_callback)

        # Sensor (can be swapped for recording/playback)
        self.sensor = TermuxLocationSensor()
        self.tracker: Optional[PositionTracker] = None
        self.session: Optional[NavigationSession] = None

        self.last_log_update = 0
        self.nav_start_time = 0
        self.arrived = False
        self._last_error_code: Optional[str] = None

    def set_sensor(self, sensor):
        """Set location source (TermuxLocationSensor, SensorRecorder, PlaybackSensor, WebSocketSensor)"""
        self.sensor = sensor

    def get_state(self) -> dict:
        """Get current state as dict for logging"""
        state = self.session.snapshot().to_dict() if self.session else {}
        state["gps_status"] = self.tracker.get_status() if self.tracker else "unknown"
        return state

    def load_campus_map(self):
        """Fetch the campus map and size the mapper from it. A missing map is not fatal."""
        if not self.load_map:
            return
        print("Loading campus map...")
        try:
            self.campus_map = retry_with_backoff(
                MapFetcher.load,
                max_time=30.0,
                initial_delay=1.0,
                max_delay=8.0,
                description="campus map download",
                retry_on=(MapLoadError,),
            )
        except MapLoadError as e:
            self.logger.log_error("Campus map unavailable", e)
            print(f"Campus map unavailable: {e}")
            return

        self.mapper.image_size = self.campus_map.size
        self.logger.log("Campus map loaded", {
            "url": self.campus_map.url,
            "bytes": len(self.campus_map.content),
            "size": self.campus_map.size,
        })

    def initialize(self):
        """Load the map and wire tracker, session and listeners together"""
        self.logger.log("Initializing navigator")
        self.load_campus_map()

        if self.debug_server:
            if self.campus_map:
                self.debug_server.map_content = self.campus_map.content
                self.debug_server.map_content_type = self.campus_map.content_type
            self.debug_server.start()

        self.tracker = PositionTracker(
            self.sensor,
            fallback=GeoPoint(*CONFIG["fallback_position"]),
        )
        self.tracker.add_listener(self._on_tracker_update)
        self.session = NavigationSession(
            self.mapper,
            tracker=self.tracker,
            speech=self.audio,
        )
        self.session.voice_enabled = self.voice
        self.session.add_listener(self._on_session_event)

    def _on_session_event(self, event: str, data: dict):
        if event == "phase":
            self.logger.log("Phase changed", data)
            if data["to"] == Phase.ARRIVED.value:
                self.arrived = True
        elif event == "instruction":
            print(f"-> {data['text']}")
        elif event == "announcement":
            self.logger.log(f"AUDIO: {data['text']}")
        self._send_state()

    def _on_tracker_update(self, update: TrackerUpdate):
        code = update.error.code if update.error else None
        if code != self._last_error_code:
            if code:
                self.logger.log_error("GPS error", update.error)
                self._redirect(update.error)
            else:
                self.logger.log("GPS recovered", {"quality": update.quality.value})
            self._last_error_code = code
        self._send_state()

    def _send_state(self):
        if self.debug_server and self.session:
            self.debug_server.send_state(self.get_state())

    def _show_troubleshooting(self, error: SensorError):
        for line in TROUBLESHOOTING.get(error.redirect, []):
            print(line)

    def _redirect(self, error: SensorError):
        """Route the user to setup help for errors only they can fix"""
        if not error.redirect:
            return
        self._show_troubleshooting(error)
        if error.redirect == "permission_setup":
            self.audio.announce("Location permission denied")

    def retry_gps(self):
        """Manual retry after GPS loss: re-subscribe to the sensor"""
        self.logger.log("GPS retry requested", {"attempt": self.tracker.retry_attempts + 1})
        self.tracker.retry()

    async def acquire_position(self) -> bool:
        """Initial one-shot fix. Returns False when navigation cannot continue."""
        print("Getting GPS fix...")
        try:
            sample = await self.tracker.probe()
        except SensorError as e:
            # The tracker listener has already shown any setup redirect
            print(f"GPS unavailable: {e}")
            if e.redirect == "permission_setup":
                return False
            print("Waiting for a location fix...")
            return True

        self.logger.log("GPS fix obtained", sample.to_dict())
        acc = f"{sample.accuracy:.0f}m" if sample.accuracy is not None else "unknown"
        print(f"Location: {sample.point.lat:.6f}, {sample.point.lng:.6f} (accuracy: {acc})")
        return True

    def periodic_update(self):
        """Handle periodic status updates"""
        now = time.time()

        # Log to file every log_interval seconds
        if now - self.last_log_update >= CONFIG["log_interval"]:
            self.logger.log("STATE", self.get_state())
            self.last_log_update = now
            self._print_status()

    def _print_status(self):
        snap = self.session.snapshot()
        if snap.distance_remaining is None:
            print(f"[{snap.phase.value}] {self.tracker.get_status()}")
            return
        line = (f"[{snap.phase.value}] {format_distance(snap.distance_remaining)} to go, "
                f"about {format_duration(snap.eta_seconds)}")
        if snap.compass:
            line += f", head {snap.compass}"
        print(line)

    def _poll_debug_retry(self):
        if self.debug_server and self.debug_server.poll_retry():
            self.retry_gps()

    def _poll_debug_destination(self):
        if not self.debug_server:
            return
        point = self.debug_server.poll_destination()
        if point is None:
            return
        try:
            self.session.select_destination(point)
        except OutOfBoundsSelection as e:
            self.logger.log_error("Destination rejected", e)
            return
        self.arrived = False
        self.session.start_navigation()

    def is_playback_finished(self) -> bool:
        """Check if playback is complete"""
        if isinstance(self.sensor, PlaybackSensor):
            return self.sensor.is_finished()
        return False

    async def run(self, destination: GeoPoint, name: str = "Selected Location"):
        """Navigate to destination until arrival, playback end, or interruption"""

        print("\n=== Campus Navigator ===")
        print(f"Destination: {name} ({destination.lat:.6f}, {destination.lng:.6f})")
        if isinstance(self.sensor, PlaybackSensor):
            print(f"Playback mode: {self.sensor.speed}x speed")
        print("Press Ctrl+C to stop")
        print()

        self.initialize()
        self.nav_start_time = time.time()
        try:
            with self.session:
                if not await self.acquire_position():
                    return

                try:
                    self.session.select_destination(destination, name)
                except OutOfBoundsSelection as e:
                    self.logger.log_error("Destination rejected", e)
                    print(e)
                    return
                self.session.start_navigation()

                while True:
                    await asyncio.sleep(CONFIG["tick_interval"])
                    self.session.tick()
                    self._poll_debug_destination()
                    self._poll_debug_retry()
                    self.periodic_update()

                    # Arrival dwell has elapsed
                    if self.arrived and self.session.phase is Phase.IDLE and not self.debug_server:
                        break
                    if self.is_playback_finished() and self.session.phase is not Phase.ARRIVED:
                        print("\nPlayback finished")
                        self.logger.log("Playback finished")
                        break
        except asyncio.CancelledError:
            self.logger.log("Navigation interrupted by user")
            raise
        finally:
            # Save GPS recording if applicable
            if isinstance(self.sensor, SensorRecorder):
                self.sensor.save()

            summary = {
                "arrived": self.arrived,
                "duration": time.time() - self.nav_start_time,
                "distance_remaining": self.session.distance_remaining if self.session else None,
            }
            self.logger.log("Navigation summary", summary)

            print("\nNavigation summary:")
            print(f"  Arrived: {'yes' if summary['arrived'] else 'no'}")
            print(f"  Duration: {format_duration(summary['duration'])}")
            if summary["distance_remaining"] is not None and not summary["arrived"]:
                print(f"  Remaining: {format_distance(summary['distance_remaining'])}")

            self.audio.close()
            if self.debug_server:
                self.debug_server.stop()
            self.logger.close()
