"""Operator commands for the air-conditioner controller.

Each command returns the text it would print; bad arguments raise
ValueError and missing components raise RuntimeError.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Optional, Sequence

from acremote.ack_detector import AckDetector
from acremote.ir_protocol import AcMode, AcState, FanSpeed, IrPulse, encode_pulses
from acremote.qr_code import MASK_AUTO, DataTooLongError, QrCode, encode_text
from acremote.qr_ecc import Ecc
from acremote.sensor import Scd40Reading

QR_MIN_VERSION = 1
QR_MAX_VERSION = 9
QR_QUIET_ZONE = 2

POWER_OFF_STATE = AcState(power=False, mode=AcMode.COOLING, temp_c=24, fan=FanSpeed.AUTO)


def render_qr(qr: QrCode, quiet: int = QR_QUIET_ZONE) -> list[str]:
    """Render ``qr`` as text lines: dark modules as two spaces, light as "##"."""
    if quiet < 0:
        raise ValueError(f"quiet zone must not be negative: {quiet}")
    span = range(-quiet, qr.size + quiet)
    return ["".join("  " if qr.get_module(x, y) else "##" for x in span) for y in span]


def format_reading(reading: Scd40Reading) -> str:
    """One-line summary of a sensor reading."""
    sign = "-" if reading.temp_001c < 0 else ""
    t_abs = abs(reading.temp_001c)
    return (
        f"CO2: {reading.co2_ppm} ppm  "
        f"T: {sign}{t_abs // 100}.{t_abs % 100:02d} C  "
        f"RH: {reading.rh_001pct // 100}.{reading.rh_001pct % 100:02d} %"
    )


def _parse_threshold(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class AcShell:
    """The ``ac`` and ``matter`` command sets over the controller's components."""

    def __init__(self, dispatcher=None, sensor=None, detector=None, blinker=None) -> None:
        self.dispatcher = dispatcher
        self.sensor = sensor
        self.detector = detector
        self.blinker = blinker

    @staticmethod
    def _need(component: Any, name: str) -> Any:
        if component is None:
            raise RuntimeError(f"no {name} available")
        return component

    def off(self) -> str:
        """Queue the power-off IR command."""
        dispatcher = self._need(self.dispatcher, "IR dispatcher")
        dispatcher.dispatch(encode_pulses(POWER_OFF_STATE))
        return "AC off command queued"

    def scd(self) -> str:
        """The last sensor reading, if there is one."""
        sensor = self._need(self.sensor, "sensor")
        reading = sensor.last_reading
        if reading is None:
            return "No reading yet"
        return format_reading(reading)

    def cfar(self, state: str) -> str:
        """Switch logging of every CFAR result "on" or "off"."""
        detector = self._need(self.detector, "ACK detector")
        if state == "on":
            detector.verbose_start()
            return f"CFAR verbose ON  (multiplier: {detector.threshold:.1f}x)"
        if state == "off":
            detector.verbose_stop()
            return "CFAR verbose OFF"
        raise ValueError("usage: ac cfar on|off")

    def threshold(self, value: Any = None) -> str:
        """Show the detection threshold, or set and save a new one."""
        detector = self._need(self.detector, "ACK detector")
        if value is None:
            return f"{detector.threshold:.1f}"
        t = _parse_threshold(value)
        if not t > 0.0:
            raise ValueError("threshold must be > 0")
        detector.save_threshold(t)
        return f"Set and saved to {t:.6f}"

    def identify(self) -> str:
        """Blink the identify LED for five seconds."""
        self._need(self.blinker, "identify LED").trigger()
        return "Blinking blue LED for 5 s"

    def qr(self, payload: str, manual_code: str = "") -> str:
        """Render the onboarding payload as a QR code, followed by both codes."""
        code = encode_text(payload, Ecc.LOW, QR_MIN_VERSION, QR_MAX_VERSION, MASK_AUTO, True)
        lines = render_qr(code)
        lines += ["", f"QR:     {payload}", f"Manual: {manual_code}"]
        return "\n".join(lines)


class _PrintingDispatcher:
    """Writes a frame's mark/space timings instead of transmitting it."""

    def __init__(self, stream) -> None:
        self.stream = stream

    def dispatch(self, pulses: Sequence[IrPulse]) -> None:
        for pulse in pulses:
            print(f"{pulse.mark_us} {pulse.space_us}", file=self.stream)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one command from the command line; returns the exit status."""
    parser = argparse.ArgumentParser(prog="acremote", description="AC controller commands")
    sub = parser.add_subparsers(dest="command", required=True)

    qr_cmd = sub.add_parser("qr", help="print a QR code for an onboarding payload")
    qr_cmd.add_argument("payload")
    qr_cmd.add_argument("manual", nargs="?", default="")

    th_cmd = sub.add_parser("threshold", help="get or set the ACK detection threshold")
    th_cmd.add_argument("value", nargs="?")
    th_cmd.add_argument("--settings", help="settings file holding the threshold")

    sub.add_parser("off", help="print the power-off frame as mark/space timings")

    args = parser.parse_args(argv)
    try:
        if args.command == "qr":
            output = AcShell().qr(args.payload, args.manual)
        elif args.command == "threshold":
            shell = AcShell(detector=AckDetector(settings_path=args.settings))
            output = shell.threshold(args.value)
        else:
            AcShell(dispatcher=_PrintingDispatcher(sys.stdout)).off()
            return 0
    except (ValueError, DataTooLongError, RuntimeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(output)
    return 0