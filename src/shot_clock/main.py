#!/usr/bin/env python3
"""
shot-clock: Dual Game Clock + Shot Clock Console

Main entry point. This application:
1. Builds two independent panels, each a game clock with a shot clock
2. Drives both panels from one asyncio event loop
3. Renders both panels on a single console status line
4. Accepts officiating commands on stdin
5. Optionally serves panel snapshots over HTTP (/health, /status, /metrics)

Usage:
    # Start with defaults
    shot-clock

    # Start with a config file and the HTTP status server
    shot-clock --config /etc/shot-clock/config.toml --health-port 8080

Commands (one per line, panel is a/b or 1/2):
    a start     start or pause panel A (also: pause, toggle, t)
    b reset     reset everything on panel B (also: r)
    a shot      reset panel A's shot clock (also: s)
    b +         add 5 s to panel B's shot clock
    a -         take 5 s off panel A's shot clock
    q           quit
"""

import argparse
import asyncio
import copy
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import toml

from .interfaces.snapshot import ClockSnapshot
from .output.health_server import HealthServer
from .output.notifier import LogNotifier
from .panel import DEFAULT_TITLES, PanelController, create_panels
from .scheduling.scheduler import AsyncioScheduler

logger = logging.getLogger('shot-clock')

DEFAULT_CONFIG: Dict[str, Any] = {
    'panels': {
        'titles': list(DEFAULT_TITLES),
    },
    'display': {
        'enabled': True,
        'render_interval': 0.25,
    },
    'output': {
        'health_port': 0,
        'bind_address': '127.0.0.1',
    },
    'logging': {
        'level': 'INFO',
    },
}

PANEL_KEYS = {'a': 0, 'b': 1, '1': 0, '2': 1}

ACTIONS = {
    'start': 'toggle_run',
    'pause': 'toggle_run',
    'toggle': 'toggle_run',
    't': 'toggle_run',
    'reset': 'reset_all',
    'r': 'reset_all',
    'shot': 'reset_shot',
    's': 'reset_shot',
    '+': 'nudge_shot_up',
    '-': 'nudge_shot_down',
}

QUIT_WORDS = ('q', 'quit', 'exit')


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a TOML file, layered over the defaults.

    Sections present in the file replace default keys one by one; a missing
    or unspecified file yields the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not config_path:
        return config

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"Config file {path} not found, using defaults")
        return config

    with open(path, 'r') as f:
        loaded = toml.load(f)

    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config


def parse_command(line: str, panel_count: int = 2) -> Optional[Tuple[int, str]]:
    """
    Parse one console command line.

    Returns:
        (panel_index, method_name), or None for a quit command

    Raises:
        ValueError: If the line is not a recognised command
    """
    words = line.strip().lower().split()
    if len(words) == 1 and words[0] in QUIT_WORDS:
        return None
    if len(words) != 2:
        raise ValueError(f"expected '<panel> <action>', got {line.strip()!r}")

    panel_word, action_word = words
    if panel_word not in PANEL_KEYS or PANEL_KEYS[panel_word] >= panel_count:
        raise ValueError(f"unknown panel {panel_word!r}")
    if action_word not in ACTIONS:
        raise ValueError(f"unknown action {action_word!r}")
    return PANEL_KEYS[panel_word], ACTIONS[action_word]


def apply_command(panels: List[PanelController], index: int, method: str) -> ClockSnapshot:
    """Run a parsed command against its panel."""
    return getattr(panels[index], method)()


def render_status(snapshots: List[ClockSnapshot]) -> str:
    return '  ||  '.join(snap.status_line() for snap in snapshots)


class StatusAwareHandler(logging.StreamHandler):
    """
    StreamHandler that wipes the in-place status line before each record.

    The status line is redrawn with a carriage return, so a log record
    written on top of it would otherwise be interleaved with clock digits.
    """

    CLEAR_LINE = '\r\x1b[K'

    def emit(self, record):
        try:
            self.stream.write(self.CLEAR_LINE)
        except Exception:
            self.handleError(record)
            return
        super().emit(record)


class ShotClockApp:
    """
    Console application hosting two panels on one asyncio event loop.

    Panels, the renderer and command input all run on the loop thread.
    The optional health server thread reads published snapshots only.
    """

    def __init__(self, config: Dict[str, Any], stream=None):
        """
        Initialize the application.

        Args:
            config: Configuration dictionary (see load_config)
            stream: Output stream for the status line (default: stdout)
        """
        self.config = config
        self.stream = stream or sys.stdout
        self.titles = list(config.get('panels', {}).get('titles', DEFAULT_TITLES))
        self.display_enabled = config.get('display', {}).get('enabled', True)
        self.render_interval = float(config.get('display', {}).get('render_interval', 0.25))
        self.health_port = int(config.get('output', {}).get('health_port', 0))
        self.bind_address = config.get('output', {}).get('bind_address', '127.0.0.1')

        self.panels: List[PanelController] = []
        self.health_server: Optional[HealthServer] = None
        self._stop: Optional[asyncio.Event] = None
        self._input_buffer = b""

        logger.info("=" * 60)
        logger.info("shot-clock initializing")
        logger.info(f"  Panels: {', '.join(self.titles)}")
        logger.info(f"  Display: {'on' if self.display_enabled else 'off'}")
        logger.info(f"  Health port: {self.health_port or 'disabled'}")
        logger.info("=" * 60)

    def run(self):
        """Run until a quit command, EOF on stdin or SIGINT/SIGTERM."""
        asyncio.run(self._run())

    def handle_line(self, line: str):
        """Handle one line of console input."""
        try:
            parsed = parse_command(line, len(self.panels))
        except ValueError as e:
            if line.strip():
                logger.warning(f"Ignoring command: {e}")
            return

        if parsed is None:
            self.request_stop()
            return

        index, method = parsed
        snap = apply_command(self.panels, index, method)
        logger.debug(f"{method} -> {snap.status_line()}")

    def feed_input(self, data: bytes):
        """
        Handle raw console bytes, one command per complete line.

        A trailing partial line is kept until the rest of it arrives.
        """
        self._input_buffer += data
        *lines, self._input_buffer = self._input_buffer.split(b"\n")
        for line in lines:
            self.handle_line(line.decode('utf-8', errors='replace'))

    def request_stop(self):
        if self._stop is not None:
            self._stop.set()

    async def _run(self):
        loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        scheduler = AsyncioScheduler(loop)
        self.panels = create_panels(scheduler, self.titles, notifier=LogNotifier())

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.request_stop)
            except NotImplementedError:
                logger.debug(f"Signal handler for {signum} not supported on this platform")

        if self.health_port > 0:
            self.health_server = HealthServer(port=self.health_port, bind_address=self.bind_address)
            self.health_server.set_panels(self.panels)
            self.health_server.start()

        reading_stdin = self._attach_stdin(loop)
        render_task = loop.create_task(self._render_loop()) if self.display_enabled else None

        logger.info("shot-clock running")
        try:
            await self._stop.wait()
        finally:
            if render_task:
                render_task.cancel()
            if reading_stdin:
                loop.remove_reader(sys.stdin.fileno())
            for panel in self.panels:
                panel.close()
            if self.health_server:
                self.health_server.stop()
            logger.info("shot-clock stopped")

    def _attach_stdin(self, loop: asyncio.AbstractEventLoop) -> bool:
        # Raw reads: a buffered readline() would strand extra lines of one write
        def on_readable():
            data = os.read(fd, 4096)
            if not data:
                logger.info("stdin closed")
                loop.remove_reader(fd)
                if self._input_buffer:
                    self.feed_input(b"\n")
                self.request_stop()
                return
            self.feed_input(data)

        try:
            fd = sys.stdin.fileno()
            loop.add_reader(fd, on_readable)
        except (NotImplementedError, OSError, ValueError) as e:
            logger.warning(f"Console input unavailable ({e}); use signals to stop")
            return False
        return True

    async def _render_loop(self):
        while True:
            line = render_status([panel.latest_snapshot for panel in self.panels])
            self.stream.write('\r' + line + '\x1b[K')
            self.stream.flush()
            await asyncio.sleep(self.render_interval)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='shot-clock: dual game clock and shot clock console',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start with config file
    shot-clock --config /etc/shot-clock/config.toml

    # Serve panel status on port 8080, no console rendering
    shot-clock --health-port 8080 --no-display
        """
    )

    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--health-port',
        type=int,
        help='Port for the HTTP health/status server (0 disables)'
    )
    parser.add_argument(
        '--no-display',
        action='store_true',
        help='Do not render the console status line'
    )

    args = parser.parse_args()

    config = load_config(args.config)
    if args.health_port is not None:
        config['output']['health_port'] = args.health_port
    if args.no_display:
        config['display']['enabled'] = False

    level = 'DEBUG' if args.debug else str(config.get('logging', {}).get('level', 'INFO')).upper()
    # Logs on stderr, status line on stdout
    if config['display']['enabled']:
        handler = StatusAwareHandler(sys.stderr)
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[handler]
    )

    ShotClockApp(config).run()


if __name__ == '__main__':
    main()
