"""
test_entrypoint.py — Tests for the container entrypoint.

The HTTP server and signal registration are replaced so main() returns
immediately.

Tests cover:
    - Port taken from the loaded config ($PORT applied by load_config)
    - Socket closed after serve_forever() returns
    - Exit code 1 when the port cannot be bound
"""

import signal
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import entrypoint
import practice_report.server


class _FakeServer:
    def __init__(self):
        self.served = False
        self.closed = False

    def serve_forever(self):
        self.served = True

    def server_close(self):
        self.closed = True


@pytest.fixture
def bound(monkeypatch, tmp_path):
    calls = {}
    server = _FakeServer()

    def fake_create_server(cfg, port=None, **kwargs):
        calls["port"] = port
        calls["cfg_port"] = cfg["server"]["port"]
        return server

    monkeypatch.setattr(practice_report.server, "create_server", fake_create_server)
    monkeypatch.setattr(signal, "signal", lambda *args: None)
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))
    return calls, server


class TestEntrypoint:

    def test_port_from_env(self, bound, monkeypatch):
        calls, server = bound
        monkeypatch.setenv("PORT", "8123")
        entrypoint.main()
        assert calls["port"] == 8123
        assert calls["cfg_port"] == 8123
        assert server.served and server.closed

    def test_port_from_config_file(self, bound, monkeypatch, tmp_path):
        calls, _ = bound
        monkeypatch.delenv("PORT", raising=False)
        config = tmp_path / "config.yaml"
        config.write_text("server:\n  port: 4555\n", encoding="utf-8")
        monkeypatch.setenv("CONFIG_PATH", str(config))
        entrypoint.main()
        assert calls["port"] == 4555

    def test_bind_failure_exits(self, monkeypatch, tmp_path):
        def refuse(cfg, port=None, **kwargs):
            raise OSError("Address already in use")

        monkeypatch.setattr(practice_report.server, "create_server", refuse)
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))
        with pytest.raises(SystemExit) as exc:
            entrypoint.main()
        assert exc.value.code == 1
