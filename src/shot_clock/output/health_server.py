"""
Health Monitoring HTTP Server for shot-clock.

Exposes the latest snapshot of every panel over HTTP so an external
scoreboard, a phone on the bench or a monitoring system can follow the
clocks. The server only reads immutable published snapshots, so it never
touches engine state from its own thread.

Endpoints:
    GET /health     - Basic health check (200 OK if running)
    GET /status     - JSON snapshots of all panels
    GET /metrics    - Prometheus-compatible metrics

Usage:
    from shot_clock.output.health_server import HealthServer

    server = HealthServer(port=8080)
    server.set_panels(panels)
    server.start()
"""

import json
import logging
import threading
import time
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class HealthRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for health endpoints."""

    # Class-level reference to status callback
    get_status: Optional[Callable[[], Dict[str, Any]]] = None

    def log_message(self, format, *args):
        """Route HTTP access logging to DEBUG."""
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        """Handle GET requests."""
        if self.path == '/health':
            self._handle_health()
        elif self.path == '/status':
            self._handle_status()
        elif self.path == '/metrics':
            self._handle_metrics()
        else:
            self.send_error(404, "Not Found")

    def _handle_health(self):
        """Basic health check - returns 200 if server is running."""
        self.send_response(200)
        self.send_header('Content-Type', 'text/plain')
        self.end_headers()
        self.wfile.write(b'OK\n')

    def _handle_status(self):
        """Return JSON status with every panel's snapshot."""
        if not self.get_status:
            self._send_json(503, {'error': 'No panels connected'})
            return
        try:
            self._send_json(200, self.get_status())
        except Exception as e:
            logger.exception(f"Status request failed: {e}")
            self._send_json(500, {'error': str(e)})

    def _handle_metrics(self):
        """Return Prometheus-compatible metrics."""
        if not self.get_status:
            self._send_text(503, '# No panels connected\n')
            return
        try:
            self._send_text(200, self._format_prometheus_metrics(self.get_status()),
                            content_type='text/plain; version=0.0.4')
        except Exception as e:
            logger.exception(f"Metrics request failed: {e}")
            self._send_text(500, f'# Error: {e}\n')

    def _send_json(self, code: int, payload: Dict[str, Any]):
        self.send_response(code)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload, indent=2).encode())

    def _send_text(self, code: int, body: str, content_type: str = 'text/plain'):
        self.send_response(code)
        self.send_header('Content-Type', content_type)
        self.end_headers()
        self.wfile.write(body.encode())

    def _format_prometheus_metrics(self, status: Dict[str, Any]) -> str:
        """Format status as Prometheus metrics."""
        gauges = [
            ('main_remaining_ms', 'Game clock time remaining in milliseconds', 'main_remaining'),
            ('shot_remaining_ms', 'Shot clock time remaining in milliseconds', 'shot_remaining'),
            ('shot_reset_ms', 'Active shot clock reset duration in milliseconds', 'active_reset_duration'),
            ('running', 'Whether the panel clocks are running (1) or paused (0)', 'is_running'),
        ]
        counters = [
            ('main_expired_total', 'Game clock expiries', 'main_expired_count'),
            ('shot_expired_total', 'Shot clock expiries', 'shot_expired_count'),
            ('auto_reset_total', 'Shot clock automatic resets', 'auto_reset_count'),
            ('ticks_committed_total', 'Committed clock ticks', 'committed_ticks'),
        ]

        panels = status.get('panels', [])
        lines = [
            '# HELP shot_clock_uptime_seconds Process uptime in seconds',
            '# TYPE shot_clock_uptime_seconds gauge',
            f'shot_clock_uptime_seconds {status.get("uptime_seconds", 0):.1f}',
        ]

        for metric_type, entries in (('gauge', gauges), ('counter', counters)):
            for name, help_text, key in entries:
                lines.extend([
                    '',
                    f'# HELP shot_clock_{name} {help_text}',
                    f'# TYPE shot_clock_{name} {metric_type}',
                ])
                for panel in panels:
                    safe_name = str(panel.get('title', '')).replace(' ', '_')
                    value = int(panel.get(key, 0))
                    lines.append(f'shot_clock_{name}{{panel="{safe_name}"}} {value}')

        lines.append('')
        return '\n'.join(lines)


class HealthServer:
    """
    HTTP server for health monitoring.

    Runs in a background thread and provides endpoints for monitoring
    the panels of a running shot-clock process.
    """

    def __init__(self, port: int = 8080, bind_address: str = '127.0.0.1'):
        """
        Initialize the health server.

        Args:
            port: HTTP port to listen on
            bind_address: Address to bind to (default: loopback only)
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.panels: List[Any] = []
        self.start_time = time.time()
        self._running = False

    def set_panels(self, panels):
        """
        Connect the panels whose snapshots are reported.

        Args:
            panels: PanelController instances
        """
        self.panels = list(panels)
        HealthRequestHandler.get_status = self._get_status

    def _get_status(self) -> Dict[str, Any]:
        """Collect the latest published snapshot of each panel."""
        panels = []
        for panel in self.panels:
            entry = panel.latest_snapshot.to_dict()
            entry.update({
                key: value for key, value in panel.stats.items()
                if key != 'start_time'
            })
            panels.append(entry)

        return {
            'timestamp': time.time(),
            'uptime_seconds': time.time() - self.start_time,
            'panels': panels,
        }

    def start(self):
        """Start the health server in a background thread."""
        if self._running:
            logger.warning("Health server already running")
            return

        try:
            self.server = HTTPServer(
                (self.bind_address, self.port),
                HealthRequestHandler
            )
            # Set timeout so handle_request doesn't block forever
            self.server.timeout = 1.0
            self._running = True

            self.thread = threading.Thread(
                target=self._serve,
                name="HealthServer",
                daemon=True
            )
            self.thread.start()

            logger.info(f"Health server started on http://{self.bind_address}:{self.port}")
            logger.info(f"  GET /health  - Health check")
            logger.info(f"  GET /status  - JSON panel snapshots")
            logger.info(f"  GET /metrics - Prometheus metrics")

        except OSError as e:
            logger.error(f"Failed to start health server: {e}")
            self._running = False

    def _serve(self):
        """Server loop (runs in background thread)."""
        while self._running:
            try:
                self.server.handle_request()
            except Exception as e:
                if self._running:
                    logger.debug(f"Health server request error: {e}")

    def stop(self):
        """Stop the health server."""
        self._running = False
        if self.thread:
            self.thread.join(timeout=2.0)
            self.thread = None
        if self.server:
            self.server.server_close()
            self.server = None
        logger.info("Health server stopped")
