"""QR Code data segments: numeric, alphanumeric, byte and ECI encodings.

A segment holds its payload as a bit string packed big-endian into bytes,
together with the character count that goes into its length field.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional

VERSION_MIN = 1
VERSION_MAX = 40
MAX_BIT_LENGTH = 0x7FFF

ALPHANUMERIC_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:"
_ALPHANUMERIC_INDEX = {ch: i for i, ch in enumerate(ALPHANUMERIC_CHARSET)}
_DIGITS = frozenset("0123456789")


class Mode(IntEnum):
    """How a segment's data bits are interpreted; the value is the mode indicator."""

    NUMERIC = 0x1
    ALPHANUMERIC = 0x2
    BYTE = 0x4
    KANJI = 0x8
    ECI = 0x7


_CHAR_COUNT_BITS = {
    Mode.NUMERIC: (10, 12, 14),
    Mode.ALPHANUMERIC: (9, 11, 13),
    Mode.BYTE: (8, 16, 16),
    Mode.KANJI: (8, 10, 12),
    Mode.ECI: (0, 0, 0),
}


@dataclass(frozen=True)
class Segment:
    """A run of data in one mode.

    ``num_chars`` counts characters for numeric, alphanumeric and kanji
    modes, bytes for byte mode and is zero for ECI. ``data`` holds
    ``bit_length`` bits, most significant bit first.
    """

    mode: Mode
    num_chars: int
    data: bytes
    bit_length: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", Mode(self.mode))
        object.__setattr__(self, "data", bytes(self.data))
        if not 0 <= self.num_chars <= MAX_BIT_LENGTH:
            raise ValueError(f"character count out of range: {self.num_chars}")
        if not 0 <= self.bit_length <= MAX_BIT_LENGTH:
            raise ValueError(f"bit length out of range: {self.bit_length}")
        if self.bit_length > len(self.data) * 8:
            raise ValueError("bit length exceeds the data buffer")


class _BitWriter:
    """Accumulates bits most-significant first into a byte string."""

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.bit_length = 0

    def append(self, value: int, num_bits: int) -> None:
        if not 0 <= num_bits <= 24 or value < 0 or value >> num_bits:
            raise ValueError(f"value {value} does not fit in {num_bits} bits")
        for i in reversed(range(num_bits)):
            offset = self.bit_length % 8
            if offset == 0:
                self.buffer.append(0)
            self.buffer[-1] |= ((value >> i) & 1) << (7 - offset)
            self.bit_length += 1


def is_numeric(text: str) -> bool:
    """Whether every character of ``text`` is a decimal digit 0-9."""
    return all(ch in _DIGITS for ch in text)


def is_alphanumeric(text: str) -> bool:
    """Whether every character of ``text`` is in the QR alphanumeric set."""
    return all(ch in _ALPHANUMERIC_INDEX for ch in text)


def calc_segment_bit_length(mode: Mode, num_chars: int) -> int:
    """Data bits needed for ``num_chars`` characters in ``mode``.

    For ECI, ``num_chars`` must be 0 and the worst case is returned.
    Raises ValueError when the result would exceed 32767 bits or the
    arguments are invalid.
    """
    if num_chars < 0:
        raise ValueError(f"negative character count: {num_chars}")
    if num_chars > MAX_BIT_LENGTH:
        raise ValueError(f"too many characters: {num_chars}")
    mode = Mode(mode)
    if mode is Mode.NUMERIC:
        result = (num_chars * 10 + 2) // 3
    elif mode is Mode.ALPHANUMERIC:
        result = (num_chars * 11 + 1) // 2
    elif mode is Mode.BYTE:
        result = num_chars * 8
    elif mode is Mode.KANJI:
        result = num_chars * 13
    elif num_chars == 0:
        result = 3 * 8
    else:
        raise ValueError("an ECI segment has no characters")
    if result > MAX_BIT_LENGTH:
        raise ValueError(f"segment needs {result} bits, more than {MAX_BIT_LENGTH}")
    return result


def calc_segment_buffer_size(mode: Mode, num_chars: int) -> int:
    """Bytes needed to hold the data of such a segment."""
    return (calc_segment_bit_length(mode, num_chars) + 7) // 8


def make_bytes(data: bytes) -> Segment:
    """A byte-mode segment holding ``data`` unchanged."""
    data = bytes(data)
    bit_length = calc_segment_bit_length(Mode.BYTE, len(data))
    return Segment(Mode.BYTE, len(data), data, bit_length)


def make_numeric(digits: str) -> Segment:
    """A numeric-mode segment: groups of three digits in 10 bits each."""
    if not is_numeric(digits):
        raise ValueError(f"not a numeric string: {digits!r}")
    expected = calc_segment_bit_length(Mode.NUMERIC, len(digits))
    writer = _BitWriter()
    for start in range(0, len(digits), 3):
        group = digits[start : start + 3]
        writer.append(int(group), len(group) * 3 + 1)
    assert writer.bit_length == expected
    return Segment(Mode.NUMERIC, len(digits), bytes(writer.buffer), writer.bit_length)


def make_alphanumeric(text: str) -> Segment:
    """An alphanumeric-mode segment: pairs of characters in 11 bits each."""
    if not is_alphanumeric(text):
        raise ValueError(f"not an alphanumeric string: {text!r}")
    expected = calc_segment_bit_length(Mode.ALPHANUMERIC, len(text))
    writer = _BitWriter()
    for start in range(0, len(text), 2):
        pair = text[start : start + 2]
        if len(pair) == 2:
            value = _ALPHANUMERIC_INDEX[pair[0]] * 45 + _ALPHANUMERIC_INDEX[pair[1]]
            writer.append(value, 11)
        else:
            writer.append(_ALPHANUMERIC_INDEX[pair], 6)
    assert writer.bit_length == expected
    return Segment(Mode.ALPHANUMERIC, len(text), bytes(writer.buffer), writer.bit_length)


def make_eci(assign_val: int) -> Segment:
    """An Extended Channel Interpretation designator for ``assign_val``."""
    writer = _BitWriter()
    if assign_val < 0:
        raise ValueError(f"negative ECI assignment value: {assign_val}")
    if assign_val < 1 << 7:
        writer.append(assign_val, 8)
    elif assign_val < 1 << 14:
        writer.append(2, 2)
        writer.append(assign_val, 14)
    elif assign_val < 1_000_000:
        writer.append(6, 3)
        writer.append(assign_val >> 10, 11)
        writer.append(assign_val & 0x3FF, 10)
    else:
        raise ValueError(f"ECI assignment value too large: {assign_val}")
    return Segment(Mode.ECI, 0, bytes(writer.buffer), writer.bit_length)


def num_char_count_bits(mode: Mode, version: int) -> int:
    """Width of the character count field for ``mode`` at ``version``."""
    if not VERSION_MIN <= version <= VERSION_MAX:
        raise ValueError(f"version out of range: {version}")
    return _CHAR_COUNT_BITS[Mode(mode)][(version + 7) // 17]


def get_total_bits(segs: Iterable[Segment], version: int) -> Optional[int]:
    """Bits needed to encode ``segs`` at ``version``, headers included.

    Returns None when a segment's count does not fit its length field or
    the total exceeds 32767 bits.
    """
    total = 0
    for seg in segs:
        ccbits = num_char_count_bits(seg.mode, version)
        if seg.num_chars >= 1 << ccbits:
            return None
        total += 4 + ccbits + seg.bit_length
        if total > MAX_BIT_LENGTH:
            return None
    return total