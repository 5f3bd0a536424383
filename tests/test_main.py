"""
Tests for configuration loading and console command handling.
"""

import asyncio
import io
import logging
import os
import sys

import pytest

from shot_clock.main import (
    ShotClockApp,
    StatusAwareHandler,
    apply_command,
    load_config,
    parse_command,
    render_status,
)
from shot_clock.panel import create_panels
from shot_clock.scheduling.scheduler import ManualScheduler


class TestLoadConfig:
    """Test TOML configuration loading."""

    def test_defaults_without_path(self):
        config = load_config()

        assert config['panels']['titles'] == ["CLOCK A", "CLOCK B"]
        assert config['output']['health_port'] == 0
        assert config['display']['render_interval'] == 0.25

    def test_missing_file_falls_back(self, tmp_path):
        config = load_config(str(tmp_path / "absent.toml"))
        assert config['logging']['level'] == "INFO"

    def test_file_values_merge_over_defaults(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            '[panels]\n'
            'titles = ["HOME", "AWAY"]\n'
            '\n'
            '[output]\n'
            'health_port = 8080\n'
        )
        config = load_config(str(path))

        assert config['panels']['titles'] == ["HOME", "AWAY"]
        assert config['output']['health_port'] == 8080
        assert config['output']['bind_address'] == "127.0.0.1"
        assert config['display']['enabled'] is True

    def test_defaults_not_mutated(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[output]\nhealth_port = 9000\n')
        load_config(str(path))

        assert load_config()['output']['health_port'] == 0


class TestParseCommand:
    """Test console command parsing."""

    @pytest.mark.parametrize("line,expected", [
        ("a start", (0, 'toggle_run')),
        ("B pause", (1, 'toggle_run')),
        ("1 t", (0, 'toggle_run')),
        ("b reset", (1, 'reset_all')),
        ("a s", (0, 'reset_shot')),
        ("2 +", (1, 'nudge_shot_up')),
        ("  a -  \n", (0, 'nudge_shot_down')),
    ])
    def test_valid_commands(self, line, expected):
        assert parse_command(line) == expected

    @pytest.mark.parametrize("line", ["q", "quit", "EXIT\n"])
    def test_quit(self, line):
        assert parse_command(line) is None

    @pytest.mark.parametrize("line", ["", "a", "c start", "a jump", "a start now"])
    def test_invalid_commands(self, line):
        with pytest.raises(ValueError):
            parse_command(line)

    def test_panel_beyond_count(self):
        with pytest.raises(ValueError):
            parse_command("b start", panel_count=1)


class TestConsole:
    """Test command dispatch and rendering."""

    def test_apply_command(self):
        panels = create_panels(ManualScheduler())
        snap = apply_command(panels, 1, 'nudge_shot_up')

        assert snap.title == "CLOCK B"
        assert snap.shot_remaining == 20000
        assert panels[0].engine.shot_remaining == 15000

    def test_render_status(self):
        panels = create_panels(ManualScheduler())
        line = render_status([p.latest_snapshot for p in panels])

        assert line == ("CLOCK A 10:00 | 15 (15s mode) IDLE  ||  "
                        "CLOCK B 10:00 | 15 (15s mode) IDLE")

    def test_handle_line(self, caplog):
        app = ShotClockApp(load_config(), stream=io.StringIO())
        app.panels = create_panels(ManualScheduler())

        app.handle_line("a start\n")
        assert app.panels[0].engine.is_running is True

        app.handle_line("a bogus\n")
        assert "Ignoring command" in caplog.text

        app.handle_line("q\n")  # no loop yet, nothing to stop


class TestConsoleInput:
    """Test raw console input handling."""

    def _app(self):
        config = load_config()
        config['display']['enabled'] = False
        return ShotClockApp(config, stream=io.StringIO())

    def test_several_lines_in_one_chunk(self):
        app = self._app()
        app.panels = create_panels(ManualScheduler())

        app.feed_input(b"a start\nb start\n")

        assert [p.engine.is_running for p in app.panels] == [True, True]

    def test_partial_line_waits_for_newline(self):
        app = self._app()
        app.panels = create_panels(ManualScheduler())

        app.feed_input(b"a +\nb st")
        assert app.panels[0].engine.shot_remaining == 20000
        assert app.panels[1].engine.is_running is False

        app.feed_input(b"art\n")
        assert app.panels[1].engine.is_running is True

    def test_piped_commands_in_one_write(self, monkeypatch):
        """Two commands written to stdin at once are both applied by the running app."""
        read_fd, write_fd = os.pipe()
        stdin = os.fdopen(read_fd, 'r')
        monkeypatch.setattr(sys, 'stdin', stdin)
        app = self._app()

        async def scenario():
            task = asyncio.ensure_future(app._run())
            await asyncio.sleep(0.05)
            os.write(write_fd, b"a start\nb start\n")
            await asyncio.sleep(0.3)
            states = [p.engine.is_running for p in app.panels]
            app.request_stop()
            await task
            return states

        try:
            states = asyncio.run(scenario())
        finally:
            os.close(write_fd)
            stdin.close()

        assert states == [True, True]

    def test_eof_stops_app(self, monkeypatch):
        read_fd, write_fd = os.pipe()
        stdin = os.fdopen(read_fd, 'r')
        monkeypatch.setattr(sys, 'stdin', stdin)
        app = self._app()

        async def scenario():
            task = asyncio.ensure_future(app._run())
            await asyncio.sleep(0.05)
            os.write(write_fd, b"a +")
            os.close(write_fd)
            await asyncio.wait_for(task, timeout=2)

        try:
            asyncio.run(scenario())
        finally:
            stdin.close()

        # Unterminated final line is still applied on EOF
        assert app.panels[0].engine.shot_remaining == 20000


class TestStatusAwareHandler:
    """Test that log records do not overwrite the status line."""

    def test_clears_status_line_before_record(self):
        stream = io.StringIO()
        handler = StatusAwareHandler(stream)
        handler.setFormatter(logging.Formatter('%(levelname)s %(message)s'))

        stream.write('\rCLOCK A 10:00 | 15 (15s mode) RUN')
        handler.emit(logging.LogRecord('shot-clock', logging.INFO, __file__, 1,
                                       'game clock expired', None, None))

        assert stream.getvalue().endswith('\r\x1b[KINFO game clock expired\n')
