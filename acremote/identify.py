"""Identify feedback: a blinking indicator LED.

While identifying, the LED toggles every ``period`` seconds, which is 2 Hz
at the default 0.25 s. :meth:`IdentifyBlinker.trigger` starts a blink that
stops by itself after a fixed time.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

BLINK_PERIOD = 0.25
TRIGGER_DURATION = 5.0


class IdentifyBlinker:
    """Blinks an LED through ``set_led(on)`` on a background thread."""

    def __init__(self, set_led: Callable[[bool], None], period: float = BLINK_PERIOD) -> None:
        if period <= 0:
            raise ValueError(f"blink period must be positive: {period}")
        self.set_led = set_led
        self.period = period
        self.led_on = False
        self._lock = threading.Lock()
        self._halt: Optional[threading.Event] = None
        self._stop_timer: Optional[threading.Timer] = None

    @property
    def blinking(self) -> bool:
        """Whether the LED is currently blinking."""
        with self._lock:
            return self._halt is not None

    def _cancel_stop_timer(self) -> None:
        if self._stop_timer is not None:
            self._stop_timer.cancel()
            self._stop_timer = None

    def _halt_blink(self) -> None:
        if self._halt is not None:
            self._halt.set()
            self._halt = None

    def _blink(self, halt: threading.Event) -> None:
        while not halt.wait(self.period):
            with self._lock:
                if halt.is_set():
                    return
                self.led_on = not self.led_on
                self.set_led(self.led_on)

    def start(self) -> None:
        """Start blinking until :meth:`stop` is called."""
        with self._lock:
            self._cancel_stop_timer()
            self._halt_blink()
            self.led_on = False
            halt = threading.Event()
            self._halt = halt
            threading.Thread(target=self._blink, args=(halt,), name="identify-blink", daemon=True).start()

    def stop(self) -> None:
        """Stop blinking and switch the LED off."""
        with self._lock:
            self._cancel_stop_timer()
            self._halt_blink()
            self.led_on = False
            self.set_led(False)

    def _expire(self) -> None:
        with self._lock:
            self._stop_timer = None
            self._halt_blink()
            self.led_on = False
            self.set_led(False)

    def trigger(self, duration: float = TRIGGER_DURATION) -> None:
        """Blink for ``duration`` seconds, then switch the LED off."""
        self.start()
        with self._lock:
            timer = threading.Timer(duration, self._expire)
            timer.daemon = True
            self._stop_timer = timer
            timer.start()