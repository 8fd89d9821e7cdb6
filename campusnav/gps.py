"""Live-location sensors, trace recording/playback, and position tracking."""

import asyncio
import itertools
import json
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .config import CONFIG
from .errors import (
    SensorDenied,
    SensorError,
    SensorPositionUnavailable,
    SensorTimeout,
    SensorUnavailable,
)
from .geo import distance
from .models import GeoPoint, GpsQuality, PositionSample

SampleCallback = Callable[[PositionSample], None]
ErrorCallback = Callable[[SensorError], None]


@dataclass
class SensorOptions:
    high_accuracy: bool = CONFIG["high_accuracy"]
    timeout_ms: int = CONFIG["sensor_timeout_ms"]
    max_sample_age_ms: int = CONFIG["sensor_max_age_ms"]


def classify_quality(accuracy: Optional[float]) -> GpsQuality:
    """GPS quality from reported horizontal accuracy in meters"""
    if accuracy is None:
        return GpsQuality.LOST
    if accuracy <= CONFIG["accuracy_accurate"]:
        return GpsQuality.ACCURATE
    if accuracy <= CONFIG["accuracy_degraded"]:
        return GpsQuality.DEGRADED
    return GpsQuality.LOST


class LocationSensor:
    """Base live-location sensor.

    subscribe() starts an asyncio task on the running loop that keeps
    delivering samples or errors through the callbacks until unsubscribe()
    cancels it. Subclasses implement read() for a single fix, or override
    _run() for a different delivery pattern.
    """

    poll_interval: float = CONFIG["sensor_poll_interval"]

    def __init__(self):
        self._tasks: dict[int, asyncio.Task] = {}
        self._ids = itertools.count(1)

    async def read(self, options: SensorOptions) -> PositionSample:
        raise NotImplementedError

    async def _run(self, on_sample: SampleCallback, on_error: ErrorCallback,
                   options: SensorOptions):
        while True:
            try:
                sample = await self.read(options)
            except SensorError as e:
                on_error(e)
            else:
                on_sample(sample)
            await asyncio.sleep(self.poll_interval)

    def subscribe(self, on_sample: SampleCallback, on_error: ErrorCallback,
                  options: Optional[SensorOptions] = None) -> int:
        handle = next(self._ids)
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(on_sample, on_error, options or SensorOptions()))
        task.add_done_callback(self._report_stopped)
        self._tasks[handle] = task
        return handle

    def _report_stopped(self, task: asyncio.Task):
        # Only reached with an exception when a callback raised
        if task.cancelled() or task.exception() is None:
            return
        print(f"{type(self).__name__} subscription stopped: {task.exception()!r}")

    def unsubscribe(self, handle: int):
        task = self._tasks.pop(handle, None)
        if task and not task.done():
            task.cancel()

    def get_current_sample(self, on_sample: SampleCallback, on_error: ErrorCallback,
                           options: Optional[SensorOptions] = None) -> asyncio.Task:
        """One-shot request for a single fix. Cancel the returned task to abandon it."""
        options = options or SensorOptions()

        async def once():
            try:
                sample = await self.read(options)
            except SensorError as e:
                on_error(e)
            else:
                on_sample(sample)

        return asyncio.get_running_loop().create_task(once())

    @property
    def active_subscriptions(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())


class TermuxLocationSensor(LocationSensor):
    """GPS access via Termux API"""

    async def read(self, options: SensorOptions) -> PositionSample:
        provider = "gps" if options.high_accuracy else "network"
        try:
            proc = await asyncio.create_subprocess_exec(
                "termux-location", "-p", provider, "-r", "once",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise SensorUnavailable("termux-location not installed")

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=options.timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise SensorTimeout(f"No fix within {options.timeout_ms}ms")
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            raise

        if proc.returncode != 0:
            error_msg = stderr.decode().strip() if stderr else "unknown error"
            if "permission" in error_msg.lower():
                raise SensorDenied(error_msg)
            raise SensorPositionUnavailable(error_msg)

        if not stdout or not stdout.strip():
            raise SensorPositionUnavailable("empty response")

        try:
            data = json.loads(stdout)
            return PositionSample(
                point=GeoPoint(lat=data["latitude"], lng=data["longitude"]),
                accuracy=data.get("accuracy"),
                heading=data.get("bearing"),
                timestamp=time.time(),
            )
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            raise SensorPositionUnavailable(f"bad termux-location output: {e}")


def load_trace(trace_path: str) -> list[dict]:
    """Load a recorded trace from file"""
    with open(trace_path) as f:
        return json.load(f)["trace"]


def save_trace(trace_path: str, trace: list[dict]):
    with open(trace_path, "w") as f:
        json.dump({
            "recorded_at": datetime.now().isoformat(),
            "trace": trace
        }, f, indent=2)


class SensorRecorder:
    """Records everything a sensor delivers to a trace file"""

    def __init__(self, sensor: LocationSensor, record_path: str):
        self.sensor = sensor
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def _record(self, sample: Optional[PositionSample], error: Optional[SensorError]):
        self.trace.append({
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "sample": sample.to_dict() if sample else None,
            "error": error.code if error else None,
        })

    def _wrap(self, on_sample: SampleCallback, on_error: ErrorCallback):
        def sample_cb(sample):
            self._record(sample, None)
            on_sample(sample)

        def error_cb(error):
            self._record(None, error)
            on_error(error)

        return sample_cb, error_cb

    def subscribe(self, on_sample, on_error, options=None):
        return self.sensor.subscribe(*self._wrap(on_sample, on_error), options)

    def unsubscribe(self, handle):
        self.sensor.unsubscribe(handle)

    def get_current_sample(self, on_sample, on_error, options=None):
        return self.sensor.get_current_sample(*self._wrap(on_sample, on_error), options)

    def save(self):
        """Save trace to file"""
        save_trace(self.record_path, self.trace)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")


class PlaybackSensor(LocationSensor):
    """Plays back a recorded trace, honoring its timing scaled by speed"""

    def __init__(self, trace: list[dict], speed: float = 1.0):
        super().__init__()
        self.trace = trace
        self.speed = speed
        self.index = 0

    @classmethod
    def from_file(cls, playback_path: str, speed: float = 1.0) -> "PlaybackSensor":
        trace = load_trace(playback_path)
        print(f"Loaded GPS trace from {playback_path} ({len(trace)} entries)")
        return cls(trace, speed)

    def _deliver(self, entry: dict, on_sample: SampleCallback, on_error: ErrorCallback):
        if entry.get("sample"):
            on_sample(PositionSample.from_dict(entry["sample"]))
        else:
            on_error(SensorError.from_code(entry.get("error") or "POSITION_UNAVAILABLE"))

    def get_poll_interval(self) -> float:
        """Wait before the next entry based on trace timing and speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return CONFIG["sensor_poll_interval"] / self.speed

        prev_elapsed = self.trace[self.index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[self.index].get("elapsed", 0)
        interval = (curr_elapsed - prev_elapsed) / self.speed
        return max(0.1, min(interval, 5.0))

    async def _run(self, on_sample, on_error, options):
        while self.index < len(self.trace):
            entry = self.trace[self.index]
            self.index += 1
            self._deliver(entry, on_sample, on_error)
            if self.index < len(self.trace):
                await asyncio.sleep(self.get_poll_interval())

    def get_current_sample(self, on_sample, on_error, options=None):
        if self.is_finished():
            on_error(SensorPositionUnavailable("playback finished"))
            return
        # Peek without consuming so the subscription replays from the start
        self._deliver(self.trace[self.index], on_sample, on_error)

    def is_finished(self) -> bool:
        return self.index >= len(self.trace)


def straight_line_trace(start: GeoPoint, end: GeoPoint, speed: float = None,
                        interval: float = 2.0, accuracy: float = 5.0) -> list[dict]:
    """Synthesize a walk from start to end as a playback trace.

    Positions are linearly interpolated, which is accurate enough at campus scale.
    """
    speed = speed or CONFIG["walking_speed"]
    total = distance(start, end)
    steps = max(1, int(total / (speed * interval)))
    trace = []
    for i in range(steps + 1):
        f = i / steps
        point = GeoPoint(
            lat=start.lat + (end.lat - start.lat) * f,
            lng=start.lng + (end.lng - start.lng) * f,
        )
        sample = PositionSample(point=point, accuracy=accuracy, timestamp=i * interval)
        trace.append({
            "elapsed": i * interval,
            "timestamp": i * interval,
            "sample": sample.to_dict(),
            "error": None,
        })
    return trace


@dataclass(frozen=True)
class TrackerUpdate:
    """What the tracker reports after each sensor event"""
    quality: GpsQuality
    sample: Optional[PositionSample]  # latest usable sample, else last known/simulated
    fresh: bool = False  # True when sample is a newly received usable fix
    error: Optional[SensorError] = None


class PositionTracker:
    """Wraps a sensor subscription: classifies samples and keeps the last good fix.

    Use as a context manager so the subscription is always released:

        with PositionTracker(sensor) as tracker:
            tracker.add_listener(session.handle_tracker_update)
            ...
    """

    def __init__(self, sensor, options: Optional[SensorOptions] = None,
                 clock: Callable[[], float] = time.monotonic,
                 fallback: Optional[GeoPoint] = None,
                 stale_after: Optional[float] = None):
        self.sensor = sensor
        self.options = options or SensorOptions()
        self.clock = clock
        self.fallback = fallback
        self.stale_after = stale_after if stale_after is not None else CONFIG["stale_after"]

        self.quality = GpsQuality.LOST
        self.last_good: Optional[PositionSample] = None
        self.last_error: Optional[SensorError] = None
        self.last_sample_at: Optional[float] = None
        self.started_at: Optional[float] = None
        self.retry_attempts = 0
        self.samples_received = 0
        self._handle = None
        self._listeners: list[Callable[[TrackerUpdate], None]] = []

    def add_listener(self, callback: Callable[[TrackerUpdate], None]):
        self._listeners.append(callback)

    def _emit(self, update: TrackerUpdate):
        for listener in list(self._listeners):
            listener(update)

    @property
    def subscribed(self) -> bool:
        return self._handle is not None

    @property
    def last_known(self) -> Optional[PositionSample]:
        """Last good sample, or the simulated fallback when there never was one"""
        if self.last_good:
            return self.last_good
        if self.fallback and self.last_error:
            return PositionSample(
                point=self.fallback,
                accuracy=CONFIG["fallback_accuracy"],
                timestamp=time.time(),
                simulated=True,
            )
        return None

    def start(self):
        if self._handle is not None:
            return
        self.started_at = self.clock()
        self._handle = self.sensor.subscribe(self._on_sample, self._on_error, self.options)

    def stop(self):
        """Release the sensor subscription. Safe to call repeatedly."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self.sensor.unsubscribe(handle)

    def retry(self):
        """Manual retry after a sensor failure: re-subscribe from scratch"""
        self.retry_attempts += 1
        self.stop()
        self.start()

    def __enter__(self) -> "PositionTracker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _on_sample(self, sample: PositionSample):
        self.samples_received += 1
        self.last_sample_at = self.clock()
        self.quality = classify_quality(sample.accuracy)
        if self.quality.usable:
            self.last_good = sample
            self.last_error = None
            self._emit(TrackerUpdate(quality=self.quality, sample=sample, fresh=True))
        else:
            self._emit(TrackerUpdate(quality=self.quality, sample=self.last_known))

    def _on_error(self, error: SensorError):
        self.last_error = error
        self.quality = GpsQuality.LOST
        self._emit(TrackerUpdate(quality=self.quality, sample=self.last_known, error=error))

    def check_staleness(self) -> GpsQuality:
        """Mark GPS lost when no sample arrived within the staleness window"""
        if self.quality is GpsQuality.LOST or self._handle is None:
            return self.quality
        reference = self.last_sample_at if self.last_sample_at is not None else self.started_at
        if reference is not None and self.clock() - reference >= self.stale_after:
            self.quality = GpsQuality.LOST
            self._emit(TrackerUpdate(quality=self.quality, sample=self.last_known))
        return self.quality

    async def probe(self, timeout: Optional[float] = None) -> PositionSample:
        """Request a single fix, bounded by timeout. Raises SensorError on failure."""
        timeout = timeout if timeout is not None else CONFIG["probe_timeout"]
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def on_sample(sample):
            if not future.done():
                future.set_result(sample)

        def on_error(error):
            if not future.done():
                future.set_exception(error)

        # Sensors that answer synchronously return nothing to cancel
        pending = self.sensor.get_current_sample(on_sample, on_error, self.options)
        try:
            sample = await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            if pending is not None:
                pending.cancel()
            error = SensorTimeout(f"No position within {timeout:.0f}s")
            self._on_error(error)
            raise error
        except SensorError as e:
            self._on_error(e)
            raise
        self._on_sample(sample)
        return sample

    def get_status(self) -> str:
        """Get GPS status string"""
        if self.quality.usable and self.last_good:
            return f"GPS {self.quality.value}, accuracy {self.last_good.accuracy:.0f}m"
        if self.last_error:
            return f"GPS lost: {self.last_error.code}"
        return "GPS lost"
