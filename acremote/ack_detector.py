"""Acoustic acknowledgement detector for IR commands.

The air conditioner beeps at about 2 kHz when it accepts a command. Each
1024-sample microphone buffer is Hann-windowed and transformed. A cell-averaging
CFAR test then compares the power in the 2 kHz bin (the cell under test) with
the mean power of the training cells on either side of it, skipping the guard
cells next to it.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

BUFFER_SAMPLES = 1024
# 1.032 MHz PDM clock decimated by 64.
SAMPLE_RATE = 16125.0
# round(2000 * 1024 / 16125): the 2 kHz bin.
TARGET_BIN = 127
GUARD_CELLS = 2
TRAIN_CELLS = 10
DEFAULT_THRESHOLD = 25.0
LOG_SCALE = 1e-6


def hann_window(length: int = BUFFER_SAMPLES) -> np.ndarray:
    """Symmetric Hann window of ``length`` points."""
    if length < 2:
        raise ValueError(f"window length must be at least 2: {length}")
    i = np.arange(length, dtype=np.float64)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * i / (length - 1)))


_WINDOW = hann_window(BUFFER_SAMPLES)


@dataclass(frozen=True)
class CfarResult:
    """Power in the target bin, the noise estimate and the detection threshold."""

    cut: float
    noise: float
    threshold: float

    @property
    def detected(self) -> bool:
        return self.cut > self.threshold


def cfar_detect(samples: Sequence[float], threshold: float = DEFAULT_THRESHOLD) -> CfarResult:
    """Run the CA-CFAR test on one buffer of 1024 samples.

    ``threshold`` is the multiple of the noise estimate that the target bin
    must exceed.
    """
    data = np.asarray(samples, dtype=np.float64)
    if data.shape != (BUFFER_SAMPLES,):
        raise ValueError(f"expected {BUFFER_SAMPLES} samples, got shape {data.shape}")
    spectrum = np.fft.rfft(data * _WINDOW)
    power = spectrum.real ** 2 + spectrum.imag ** 2

    cut = float(power[TARGET_BIN])
    span = GUARD_CELLS + TRAIN_CELLS
    bins = np.arange(TARGET_BIN - span, TARGET_BIN + span + 1)
    training = bins[np.abs(bins - TARGET_BIN) > GUARD_CELLS]
    noise = float(power[training].sum()) / (2 * TRAIN_CELLS)
    return CfarResult(cut, noise, noise * threshold)


class AckDetector:
    """Listens for the acknowledgement beep within an on-demand capture window.

    Audio buffers are handed in with :meth:`feed`, typically from a capture
    thread; :meth:`collect_ack` waits for a detection.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        settings_path: Union[str, Path, None] = None,
    ) -> None:
        self.threshold = float(threshold)
        self.settings_path = Path(settings_path) if settings_path is not None else None
        self.capture_active = False
        self.verbose = False
        self.verbose_owns_capture = False
        self._ack = threading.Event()
        self._lock = threading.Lock()
        if self.settings_path is not None:
            self.load_settings()

    @property
    def running(self) -> bool:
        """Whether audio capture is wanted, for a capture or for verbose output."""
        return self.capture_active or self.verbose_owns_capture

    def start_listen(self) -> None:
        """Open a listen window, discarding any earlier detection."""
        with self._lock:
            self._ack.clear()
            self.capture_active = True

    def feed(self, samples: Sequence[float]) -> CfarResult:
        """Process one buffer; signals an acknowledgement if one is heard while listening."""
        result = cfar_detect(samples, self.threshold)
        logger.debug(
            "PDM cut (x1e-6): %.2f  noise_est (x1e-6): %.2f",
            result.cut * LOG_SCALE,
            result.noise * LOG_SCALE,
        )
        if self.verbose:
            logger.info(
                "PDM cut (x1e-6): %.2f  thresh (x1e-6): %.2f%s",
                result.cut * LOG_SCALE,
                result.threshold * LOG_SCALE,
                "  [ABOVE THRESHOLD]" if result.detected else "",
            )
        with self._lock:
            if self.capture_active and result.detected:
                logger.info(
                    "PDM: ACK detected (cut=%.2f thresh=%.2f)",
                    result.cut * LOG_SCALE,
                    result.threshold * LOG_SCALE,
                )
                self._ack.set()
        return result

    def collect_ack(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for an acknowledgement, then close the window."""
        heard = self._ack.wait(timeout)
        with self._lock:
            self.capture_active = False
        return heard

    def verbose_start(self) -> None:
        """Log every CFAR result, starting capture if none is running."""
        self.verbose = True
        if not self.capture_active:
            self.verbose_owns_capture = True

    def verbose_stop(self) -> None:
        """Stop logging CFAR results and any capture started for them."""
        self.verbose = False
        self.verbose_owns_capture = False

    def save_threshold(self, value: float) -> None:
        """Set the threshold and persist it to the settings file, if any."""
        self.threshold = float(value)
        if self.settings_path is None:
            return
        try:
            self.settings_path.write_text(json.dumps({"threshold": self.threshold}))
        except OSError as exc:
            logger.error("PDM: threshold save failed: %s", exc)

    def load_settings(self) -> None:
        """Load a persisted threshold; a missing or unreadable file keeps the current one."""
        if self.settings_path is None:
            return
        try:
            settings = json.loads(self.settings_path.read_text())
        except FileNotFoundError:
            return
        except (OSError, ValueError) as exc:
            logger.warning("PDM: settings load failed: %s (using default threshold)", exc)
            return
        value = settings.get("threshold") if isinstance(settings, dict) else None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            self.threshold = float(value)
            logger.info("PDM: threshold loaded: %.2f", self.threshold)