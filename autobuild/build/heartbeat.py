# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CI heartbeat.

Hosted CI kills jobs that produce no output for a while (ten minutes on
Travis). A non-verbose build of a large package can easily be that quiet, so
while the platform loop runs we print a dot every few seconds.

The heartbeat is a daemon thread that only ever writes to its stream. It
stops when its Event is set; the context manager sets it and joins the thread
on the way out, whether the body raised or not.
"""

import logging
import sys
import threading
from types import TracebackType
from typing import Optional, TextIO

from autobuild.logging.logger import get_logger

_logger: logging.Logger = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 4.0


class CIHeartbeat:
    """
    Context manager that writes a progress marker on a fixed interval.

    Usage:
        with CIHeartbeat(enabled=ctx.heartbeat_enabled):
            run_the_long_thing()

    When `enabled` is False this does nothing at all.
    """

    def __init__(
        self,
        enabled: bool,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        stream: Optional[TextIO] = None,
        marker: str = ".",
    ) -> None:
        self.enabled = enabled
        self.interval = interval
        self._stream = stream if stream is not None else sys.stdout
        self._marker = marker
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.beats = 0

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self._stream.write(self._marker)
            self._stream.flush()
            self.beats += 1

    def __enter__(self) -> "CIHeartbeat":
        if self.enabled:
            _logger.info("Brewing a pot of coffee for CI...")
            self._thread = threading.Thread(target=self._run, name="ci-heartbeat", daemon=True)
            self._thread.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        if self.beats:
            self._stream.write("\n")
            self._stream.flush()


def ci_heartbeat(
    enabled: bool,
    interval: float = DEFAULT_INTERVAL_SECONDS,
    stream: Optional[TextIO] = None,
) -> CIHeartbeat:
    """`with ci_heartbeat(ctx.heartbeat_enabled):` reads better than the class name."""
    return CIHeartbeat(enabled, interval=interval, stream=stream)
