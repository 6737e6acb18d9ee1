# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for the CI heartbeat thread.
"""

import io
import threading
import time

import pytest

from autobuild.build.heartbeat import CIHeartbeat, ci_heartbeat
from autobuild.build.models import RunContext


def _heartbeat_alive() -> bool:
    return any(t.name == "ci-heartbeat" and t.is_alive() for t in threading.enumerate())


class TestCIHeartbeat:
    def test_writes_markers_while_running(self) -> None:
        stream = io.StringIO()
        with CIHeartbeat(enabled=True, interval=0.01, stream=stream) as heartbeat:
            deadline = time.monotonic() + 5
            while heartbeat.beats < 3 and time.monotonic() < deadline:
                time.sleep(0.01)
        assert heartbeat.beats >= 3
        assert stream.getvalue().startswith("...")
        assert stream.getvalue().endswith("\n")

    def test_thread_is_joined_on_exit(self) -> None:
        with CIHeartbeat(enabled=True, interval=0.01, stream=io.StringIO()) as heartbeat:
            assert _heartbeat_alive()
        assert not _heartbeat_alive()

    def test_stops_when_body_raises(self) -> None:
        heartbeat = CIHeartbeat(enabled=True, interval=0.01, stream=io.StringIO())
        with pytest.raises(RuntimeError):
            with heartbeat:
                raise RuntimeError("build exploded")
        assert not _heartbeat_alive()

    def test_disabled_does_nothing(self) -> None:
        stream = io.StringIO()
        with CIHeartbeat(enabled=False, interval=0.01, stream=stream) as heartbeat:
            time.sleep(0.05)
            assert not _heartbeat_alive()
        assert stream.getvalue() == ""
        assert heartbeat.beats == 0


class TestHeartbeatEnabled:
    @pytest.mark.parametrize(
        ("ci", "verbose", "expected"),
        [(True, False, True), (True, True, False), (False, False, False), (False, True, False)],
    )
    def test_only_quiet_ci_runs_get_a_heartbeat(self, ci: bool, verbose: bool, expected: bool) -> None:
        assert RunContext(ci=ci, verbose=verbose).heartbeat_enabled is expected


class TestCiHeartbeatFunction:
    def test_returns_a_configured_context_manager(self) -> None:
        stream = io.StringIO()
        with ci_heartbeat(True, interval=0.01, stream=stream) as heartbeat:
            assert _heartbeat_alive()
        assert not _heartbeat_alive()
