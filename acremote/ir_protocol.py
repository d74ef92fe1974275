"""Hitachi "Shirokuma-kun" air-conditioner IR frame encoder.

The protocol is stateless: every frame carries the complete desired state.
A frame is a 30 ms wakeup burst, a header pulse, 53 bytes sent LSB-first
(a 3-byte preamble followed by 25 data bytes, each chased by its bitwise
complement) and a trailing mark.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

WAKEUP_MARK = 30000
WAKEUP_SPACE = 49500
HEADER_MARK = 3380
HEADER_SPACE = 1700
BIT_MARK = 384
ONE_SPACE = 1234
ZERO_SPACE = 399
TRAIL_MARK = BIT_MARK

RAW_LENGTH = 25
COMMAND_LENGTH = 53
# Wakeup(1) + header(1) + 53 * 8 data bits + trail(1) = 427, rounded up.
MAX_PULSES = 430

_COMMAND_PREAMBLE = bytes((0x01, 0x10, 0x00))
_RAW_PREAMBLE = bytes((0x40, 0xFF, 0xCC, 0x92, 0x13))
_RAW_TAIL = bytes((0x80, 0x03, 0x01, 0x88))


class AcMode(IntEnum):
    """Operating mode, sent in the low nibble of raw byte 11."""

    OFF = 0x0
    VENTILATION = 0x1
    COOLING = 0x3
    DEHUMIDIFY = 0x5
    HEATING = 0x6


class FanSpeed(IntEnum):
    """Fan speed, sent in the high nibble of raw byte 11."""

    SPEED_1 = 0x1
    SPEED_2 = 0x2
    SPEED_3 = 0x3
    SPEED_4 = 0x4
    AUTO = 0x5
    SPEED_5 = 0x6


@dataclass(frozen=True)
class IrPulse:
    """One mark/space pair, in microseconds."""

    mark_us: int
    space_us: int

    def __post_init__(self) -> None:
        for name in ("mark_us", "space_us"):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{name} out of range: {value}")


@dataclass(frozen=True)
class AcState:
    """Complete air-conditioner state to transmit."""

    power: bool
    mode: AcMode
    temp_c: int
    fan: FanSpeed

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", AcMode(self.mode))
        object.__setattr__(self, "fan", FanSpeed(self.fan))
        if not 0 <= self.temp_c <= 0xFF:
            raise ValueError(f"temperature out of range: {self.temp_c}")


_ONE_PULSE = IrPulse(BIT_MARK, ONE_SPACE)
_ZERO_PULSE = IrPulse(BIT_MARK, ZERO_SPACE)


def encode_raw(state: AcState) -> bytes:
    """Build the 25 raw data bytes for ``state``."""
    raw = bytearray(RAW_LENGTH)
    raw[0:5] = _RAW_PREAMBLE
    raw[5] = (state.temp_c << 2) & 0xFF

    mode_nibble = state.mode if state.power else AcMode.HEATING
    raw[11] = ((state.fan << 4) | mode_nibble) & 0xFF

    if not state.power:
        raw[12] = 0xE1
    elif state.mode in (AcMode.HEATING, AcMode.COOLING):
        raw[12] = 0xF1
    else:
        raw[12] = 0xF0

    raw[15:19] = _RAW_TAIL
    raw[21:25] = b"\xff" * 4
    return bytes(raw)


def encode_command(state: AcState) -> bytes:
    """Build the 53-byte command: preamble, then each raw byte and its complement."""
    body = b"".join(bytes((byte, byte ^ 0xFF)) for byte in encode_raw(state))
    return _COMMAND_PREAMBLE + body


def encode_pulses(state: AcState) -> list[IrPulse]:
    """Encode ``state`` as the full list of IR pulses for one frame."""
    pulses = [IrPulse(WAKEUP_MARK, WAKEUP_SPACE), IrPulse(HEADER_MARK, HEADER_SPACE)]
    pulses.extend(
        _ONE_PULSE if (byte >> bit) & 1 else _ZERO_PULSE
        for byte in encode_command(state)
        for bit in range(8)
    )
    pulses.append(IrPulse(TRAIL_MARK, 0))
    return pulses