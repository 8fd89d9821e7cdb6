"""Debug GUI server for Campus Navigator."""

import asyncio
import http.server
import json
import queue
import socketserver
import threading
import time
import webbrowser
from functools import partial
from typing import Optional

import websockets

from .errors import SensorTimeout
from .gps import LocationSensor, SensorOptions
from .mapper import CoordinateMapper
from .models import GeoPoint, PixelPoint, PositionSample


# Served at "/", with {{WS_PORT}} and {{IMAGE_WIDTH}} filled in per request
DEBUG_GUI_HTML = '''<!DOCTYPE html>
<html>
<head>
    <title>Campus Navigator Debug GUI</title>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        html, body { margin: 0; height: 100%; font: 13px/1.4 system-ui, sans-serif; color: #222; }
        body { display: grid; grid-template-rows: auto 1fr; }
        #topbar { display: flex; align-items: center; gap: 16px; padding: 8px 16px; background: #0f3d3e; color: #f1f5f4; }
        #topbar h1 { margin: 0; font-size: 16px; flex: 1; }
        #conn { padding: 2px 10px; border-radius: 10px; background: #b91c1c; }
        #conn.up { background: #15803d; }
        #layout { display: grid; grid-template-columns: 1fr 360px; min-height: 0; }
        #viewport { overflow: auto; background: #d6dedb; position: relative; }
        #stage { position: relative; display: inline-block; }
        #campus-map { display: block; width: 1200px; cursor: crosshair; }
        .pin { position: absolute; width: 14px; height: 14px; margin: -7px 0 0 -7px; border-radius: 50%; border: 2px solid #fff; pointer-events: none; display: none; }
        #pin-here { background: #dc2626; }
        #pin-here.stale { background: #9ca3af; }
        #pin-goal { background: #ea580c; border-radius: 2px; }
        #hint { position: sticky; left: 12px; bottom: 12px; display: inline-block; margin: 12px; padding: 4px 10px; background: #0f3d3ecc; color: #fff; border-radius: 4px; }
        aside { display: flex; flex-direction: column; min-height: 0; border-left: 1px solid #b8c4c0; background: #f6f8f7; }
        aside section { padding: 10px 14px; border-bottom: 1px solid #dde4e1; }
        aside h3 { margin: 0 0 8px; font-size: 11px; letter-spacing: 1px; color: #58706a; }
        dl { display: grid; grid-template-columns: auto 1fr; gap: 4px 12px; margin: 0; }
        dt { color: #58706a; }
        dd { margin: 0; font-weight: 600; }
        #speech { background: #fdf6e3; }
        #spoken { font-style: italic; min-height: 18px; }
        #console { flex: 1; display: flex; flex-direction: column; min-height: 0; }
        #log { flex: 1; overflow-y: auto; margin: 0; padding: 8px; background: #111827; color: #d1d5db; font: 11px monospace; white-space: pre-wrap; }
        #log .t { color: #6b7280; }
        #log .d { color: #67e8f9; }
        #retry { margin-top: 10px; padding: 4px 12px; border: 1px solid #0f3d3e; border-radius: 4px; background: #fff; cursor: pointer; }
        #retry.lost { background: #b91c1c; border-color: #b91c1c; color: #fff; }
    </style>
</head>
<body>
    <div id="topbar">
        <h1>Campus Navigator Debug GUI</h1>
        <span id="conn">offline</span>
    </div>
    <div id="layout">
        <div id="viewport">
            <div id="stage">
                <img id="campus-map" src="/map" alt="Campus map" />
                <div id="pin-here" class="pin"></div>
                <div id="pin-goal" class="pin"></div>
            </div>
            <div id="hint">click: move GPS position &middot; shift+click: pick destination</div>
        </div>
        <aside>
            <section>
                <h3>NAVIGATION</h3>
                <dl id="fields"></dl>
                <button id="retry" type="button">Retry GPS</button>
            </section>
            <section id="speech">
                <h3>LAST SPOKEN</h3>
                <div id="spoken">-</div>
            </section>
            <section id="console">
                <h3>LOG</h3>
                <pre id="log"></pre>
            </section>
        </aside>
    </div>
    <script>
        var NATIVE_WIDTH = {{IMAGE_WIDTH}};
        var MAX_LOG_LINES = 150;
        var socket = null;
        var map = document.getElementById('campus-map');

        // [label, function(state) -> text]
        var FIELDS = [
            ['Phase', function(s) { return s.phase; }],
            ['GPS', function(s) { return s.gps_quality && s.gps_quality + (s.stale ? ' (stale)' : ''); }],
            ['Destination', function(s) { return s.destination && s.destination.name; }],
            ['Remaining', function(s) { return s.distance_remaining != null && Math.round(s.distance_remaining) + ' m'; }],
            ['ETA', function(s) { return s.eta_seconds != null && Math.round(s.eta_seconds) + ' s'; }],
            ['Progress', function(s) { return s.progress != null && Math.round(s.progress * 100) + '%'; }],
            ['Instruction', function(s) { return s.instruction; }],
        ];

        var fieldCells = FIELDS.map(function(field) {
            var dt = document.createElement('dt');
            var dd = document.createElement('dd');
            dt.textContent = field[0];
            dd.textContent = '-';
            document.getElementById('fields').append(dt, dd);
            return dd;
        });

        function ratio() {
            return NATIVE_WIDTH ? map.clientWidth / NATIVE_WIDTH : 1;
        }

        function setConnected(up) {
            var badge = document.getElementById('conn');
            badge.textContent = up ? 'live' : 'offline';
            badge.classList.toggle('up', up);
        }

        function movePin(id, pixel) {
            var pin = document.getElementById(id);
            pin.style.display = pixel ? 'block' : 'none';
            if (pixel) {
                pin.style.left = pixel.x * ratio() + 'px';
                pin.style.top = pixel.y * ratio() + 'px';
            }
            return pin;
        }

        function render(state) {
            FIELDS.forEach(function(field, i) {
                fieldCells[i].textContent = field[1](state) || '-';
            });
            movePin('pin-here', state.position_pixel).classList.toggle('stale', !!state.stale);
            movePin('pin-goal', state.destination_pixel);
            document.getElementById('retry').classList.toggle('lost', state.gps_quality === 'lost');
        }

        function log(text, data) {
            var out = document.getElementById('log');
            var line = document.createElement('div');
            var stamp = document.createElement('span');
            stamp.className = 't';
            stamp.textContent = new Date().toTimeString().slice(0, 8) + ' ';
            line.append(stamp, text);
            if (data) {
                var extra = document.createElement('span');
                extra.className = 'd';
                extra.textContent = ' ' + JSON.stringify(data);
                line.append(extra);
            }
            out.append(line);
            while (out.childElementCount > MAX_LOG_LINES) {
                out.firstElementChild.remove();
            }
            out.scrollTop = out.scrollHeight;
        }

        var HANDLERS = {
            state: render,
            log: function(d) { log(d.message, d.data); },
            audio: function(d) { document.getElementById('spoken').textContent = d.text; },
        };

        function openSocket() {
            socket = new WebSocket('ws://localhost:{{WS_PORT}}');
            socket.addEventListener('open', function() {
                setConnected(true);
                log('navigator connected');
            });
            socket.addEventListener('close', function() {
                setConnected(false);
                log('navigator gone, retrying');
                setTimeout(openSocket, 2000);
            });
            socket.addEventListener('message', function(event) {
                var msg = JSON.parse(event.data);
                if (HANDLERS[msg.type]) {
                    HANDLERS[msg.type](msg.data);
                }
            });
        }

        // Clicks go out in the image's native pixel space
        map.addEventListener('click', function(e) {
            if (!socket || socket.readyState !== WebSocket.OPEN) {
                return;
            }
            var box = map.getBoundingClientRect();
            var point = {x: (e.clientX - box.left) / ratio(), y: (e.clientY - box.top) / ratio()};
            var kind = e.shiftKey ? 'destination' : 'location';
            socket.send(JSON.stringify({type: kind, data: point}));
            log(kind + ' @ ' + point.x.toFixed(1) + ', ' + point.y.toFixed(1));
        });

        document.getElementById('retry').addEventListener('click', function() {
            if (socket && socket.readyState === WebSocket.OPEN) {
                socket.send(JSON.stringify({type: 'retry'}));
                log('GPS retry requested');
            }
        });

        openSocket();
    </script>
</body>
</html>'''


class DebugServer:
    """HTTP and WebSocket server for debug GUI"""

    def __init__(self, mapper: CoordinateMapper, map_content: Optional[bytes] = None,
                 map_content_type: str = "image/svg+xml",
                 http_port: int = 8080, ws_port: int = 8765):
        self.mapper = mapper
        self.map_content = map_content
        self.map_content_type = map_content_type
        self.http_port = http_port
        self.ws_port = ws_port
        self.location_queue: queue.Queue = queue.Queue()
        self.destination_queue: queue.Queue = queue.Queue()
        self.retry_requested = threading.Event()
        self.http_thread = None
        self.ws_thread = None
        self.ws_loop = None
        self.connected_clients: set = set()
        self._running = False

    def start(self, open_browser: bool = True):
        """Serve the page and the socket from daemon threads, optionally opening a browser"""
        self._running = True

        self.http_thread = threading.Thread(target=self._run_http_server, daemon=True)
        self.http_thread.start()

        self.ws_thread = threading.Thread(target=self._run_ws_server, daemon=True)
        self.ws_thread.start()

        # Both servers bind within this window
        time.sleep(0.5)

        url = f"http://localhost:{self.http_port}"
        print(f"Debug GUI available at: {url}")
        if open_browser:
            webbrowser.open(url)

    def _run_http_server(self):
        """Serve the page and the map image until stopped"""
        width = self.mapper.image_size[0] if self.mapper.image_size else 0
        handler = partial(_DebugHTTPHandler, self.ws_port, width,
                          self.map_content, self.map_content_type)
        with socketserver.TCPServer(("", self.http_port), handler) as httpd:
            httpd.allow_reuse_address = True
            httpd.timeout = 0.5
            while self._running:
                httpd.handle_request()

    def handle_message(self, message: str):
        """Turn a browser message into a retry request, a position or a destination.

        Clicks arrive in the map image's native pixel space.
        """
        try:
            data = json.loads(message)
            msg_type = data.get("type")
        except (json.JSONDecodeError, AttributeError):
            return

        if msg_type == "retry":
            self.retry_requested.set()
            return

        try:
            payload = data.get("data", {})
            pixel = PixelPoint(x=float(payload["x"]), y=float(payload["y"]))
            point = self.mapper.to_geo(pixel)
        except (KeyError, TypeError, ValueError):
            return

        if msg_type == "location":
            self.location_queue.put(PositionSample(
                point=point,
                accuracy=0,
                timestamp=time.time(),
                simulated=True,
            ))
        elif msg_type == "destination":
            self.destination_queue.put(point)

    def _run_ws_server(self):
        """Accept browser sockets on a private event loop until stopped"""
        self.ws_loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.ws_loop)

        async def handler(websocket):
            self.connected_clients.add(websocket)
            try:
                async for message in websocket:
                    self.handle_message(message)
            finally:
                self.connected_clients.discard(websocket)

        async def main():
            try:
                async with websockets.serve(handler, "localhost", self.ws_port):
                    while self._running:
                        await asyncio.sleep(0.1)
            except OSError as e:
                print(f"WebSocket server error: {e}")

        self.ws_loop.run_until_complete(main())

    def _send_message(self, msg_type: str, data: dict):
        """Broadcast a typed JSON message from any thread"""
        if not self.connected_clients or not self.ws_loop:
            return

        message = json.dumps({"type": msg_type, "data": data}, default=str)

        async def send_to_all():
            for client in list(self.connected_clients):
                try:
                    await client.send(message)
                except websockets.ConnectionClosed:
                    self.connected_clients.discard(client)

        asyncio.run_coroutine_threadsafe(send_to_all(), self.ws_loop)

    def send_state(self, state: dict):
        """Push a navigation snapshot"""
        self._send_message("state", state)

    def send_log(self, message: str, data: Optional[dict] = None):
        """Mirror a log line"""
        self._send_message("log", {"message": message, "data": data})

    def send_audio(self, text: str):
        """Show the text that was just spoken"""
        self._send_message("audio", {"text": text})

    def get_clicked_location(self, timeout: float = 30) -> Optional[PositionSample]:
        """Block until user clicks on map, return the simulated sample"""
        try:
            return self.location_queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def poll_destination(self) -> Optional[GeoPoint]:
        """Destination picked with shift+click since the last poll, if any"""
        try:
            return self.destination_queue.get_nowait()
        except queue.Empty:
            return None

    def poll_retry(self) -> bool:
        """True once for each Retry GPS press since the last poll"""
        if not self.retry_requested.is_set():
            return False
        self.retry_requested.clear()
        return True

    def stop(self):
        """Let both server loops exit on their next pass"""
        self._running = False


class _DebugHTTPHandler(http.server.SimpleHTTPRequestHandler):
    """HTTP handler that serves the debug GUI and the campus map"""

    def __init__(self, ws_port: int, image_width: float, map_content: Optional[bytes],
                 map_content_type: str, *args, **kwargs):
        self.ws_port = ws_port
        self.image_width = image_width
        self.map_content = map_content
        self.map_content_type = map_content_type
        super().__init__(*args, **kwargs)

    def do_GET(self):
        if self.path == '/' or self.path == '/index.html':
            self.send_response(200)
            self.send_header('Content-type', 'text/html')
            self.end_headers()
            html = (DEBUG_GUI_HTML
                    .replace('{{WS_PORT}}', str(self.ws_port))
                    .replace('{{IMAGE_WIDTH}}', str(self.image_width or 0)))
            self.wfile.write(html.encode())
        elif self.path == '/map' and self.map_content:
            self.send_response(200)
            self.send_header('Content-type', self.map_content_type)
            self.end_headers()
            self.wfile.write(self.map_content)
        else:
            self.send_error(404)

    def log_message(self, format, *args):
        pass  # quiet


class WebSocketSensor(LocationSensor):
    """Location sensor fed by map clicks in the debug GUI"""

    def __init__(self, debug_server: DebugServer):
        super().__init__()
        self.server = debug_server

    async def _run(self, on_sample, on_error, options):
        while True:
            sample = await asyncio.to_thread(self.server.get_clicked_location, 0.5)
            if sample:
                on_sample(sample)

    def get_current_sample(self, on_sample, on_error, options=None):
        options = options or SensorOptions()

        async def once():
            sample = await asyncio.to_thread(
                self.server.get_clicked_location, options.timeout_ms / 1000
            )
            if sample:
                on_sample(sample)
            else:
                on_error(SensorTimeout("No location clicked"))

        return asyncio.get_running_loop().create_task(once())
