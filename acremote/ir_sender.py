"""Sending IR frames with acknowledgement retries, and a background dispatcher.

The transmitter is a callable that takes a sequence of IR pulses and blocks
while sending them. The detector opens a listen window after each attempt.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol, Sequence

from acremote.ir_protocol import IrPulse

logger = logging.getLogger(__name__)

RETRY_COUNT = 10
ACK_TIMEOUT = 1.0


class _AckListener(Protocol):
    def start_listen(self) -> None: ...

    def collect_ack(self, timeout: float) -> bool: ...


class IrSender:
    """Transmits a frame repeatedly until the unit acknowledges it."""

    def __init__(
        self,
        transmit: Callable[[Sequence[IrPulse]], None],
        detector: _AckListener,
        retries: int = RETRY_COUNT,
        ack_timeout: float = ACK_TIMEOUT,
    ) -> None:
        if retries < 1:
            raise ValueError(f"at least one attempt is needed: {retries}")
        self.transmit = transmit
        self.detector = detector
        self.retries = retries
        self.ack_timeout = ack_timeout

    def send_command(self, pulses: Sequence[IrPulse]) -> bool:
        """Send ``pulses``; True once acknowledged, False after all attempts fail."""
        for attempt in range(1, self.retries + 1):
            self.transmit(pulses)
            self.detector.start_listen()
            if self.detector.collect_ack(self.ack_timeout):
                logger.info("IR: ACK received on attempt %d/%d", attempt, self.retries)
                return True
            logger.warning("IR: no ACK on attempt %d/%d", attempt, self.retries)
        logger.error("IR: command failed after %d attempts", self.retries)
        return False


class IrDispatcher:
    """Sends commands on a worker thread so callers never block.

    Only the newest command waits: dispatching while one is queued replaces
    it. Closing sends any queued command, then stops the worker.
    """

    def __init__(self, sender: IrSender) -> None:
        self.sender = sender
        self._cond = threading.Condition()
        self._pending: Optional[tuple[IrPulse, ...]] = None
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="ir-dispatch", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._pending is None and not self._closed:
                    self._cond.wait()
                if self._pending is None:
                    return
                pulses, self._pending = self._pending, None
            try:
                self.sender.send_command(pulses)
            except Exception:
                logger.exception("IR: sending failed")

    def dispatch(self, pulses: Sequence[IrPulse]) -> None:
        """Queue ``pulses`` for sending, replacing any command still waiting."""
        with self._cond:
            if self._closed:
                raise RuntimeError("dispatcher is closed")
            self._pending = tuple(pulses)
            self._cond.notify()

    def close(self) -> None:
        """Send any queued command and stop the worker thread."""
        with self._cond:
            self._closed = True
            self._cond.notify()
        self._thread.join()

    def __enter__(self) -> "IrDispatcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()