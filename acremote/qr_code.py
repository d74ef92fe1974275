"""QR Code symbol construction.

Segments are turned into a bit stream and split into error-corrected
codewords. Those are drawn in the zigzag order around the function patterns
(finders, timing, alignment, format and version information). A mask is then
chosen, either as given or by the lowest penalty score.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from itertools import cycle
from typing import Callable, Iterable, Optional, Sequence

from acremote.qr_ecc import Ecc, add_ecc_and_interleave, get_num_data_codewords, get_num_raw_data_modules
from acremote.qr_segment import (
    VERSION_MAX,
    VERSION_MIN,
    Mode,
    Segment,
    calc_segment_bit_length,
    get_total_bits,
    is_alphanumeric,
    is_numeric,
    make_alphanumeric,
    make_bytes,
    make_numeric,
    num_char_count_bits,
)

MASK_AUTO = -1

_PENALTY_N1 = 3
_PENALTY_N2 = 3
_PENALTY_N3 = 40
_PENALTY_N4 = 10

_FORMAT_ECC_BITS = {Ecc.LOW: 1, Ecc.MEDIUM: 0, Ecc.QUARTILE: 3, Ecc.HIGH: 2}

_MASK_PATTERNS: tuple[Callable[[int, int], bool], ...] = (
    lambda x, y: (x + y) % 2 == 0,
    lambda x, y: y % 2 == 0,
    lambda x, y: x % 3 == 0,
    lambda x, y: (x + y) % 3 == 0,
    lambda x, y: (x // 3 + y // 2) % 2 == 0,
    lambda x, y: x * y % 2 + x * y % 3 == 0,
    lambda x, y: (x * y % 2 + x * y % 3) % 2 == 0,
    lambda x, y: ((x + y) % 2 + x * y % 3) % 2 == 0,
)


class DataTooLongError(ValueError):
    """The data does not fit in any version of the allowed range."""


@dataclass(frozen=True)
class QrCode:
    """A finished QR Code symbol; ``modules[y][x]`` is True for a dark module."""

    version: int
    ecl: Ecc
    mask: int
    modules: tuple[tuple[bool, ...], ...]

    @property
    def size(self) -> int:
        return len(self.modules)

    def get_module(self, x: int, y: int) -> bool:
        """Colour at (x, y): True for dark, False for light or out of bounds."""
        return 0 <= x < self.size and 0 <= y < self.size and self.modules[y][x]


def _check_version(version: int) -> None:
    if not VERSION_MIN <= version <= VERSION_MAX:
        raise ValueError(f"version out of range: {version}")


def version_to_size(version: int) -> int:
    """Side length in modules of a symbol of ``version``."""
    _check_version(version)
    return version * 4 + 17


def alignment_pattern_positions(version: int) -> tuple[int, ...]:
    """Ascending centre coordinates of alignment patterns, used on both axes."""
    _check_version(version)
    if version == 1:
        return ()
    num_align = version // 7 + 2
    if version == 32:
        step = 26
    else:
        step = (version * 4 + num_align * 2 + 1) // (num_align * 2 - 2) * 2
    last = version * 4 + 10
    return (6,) + tuple(last - step * k for k in reversed(range(num_align - 1)))


def min_fit_version(ecl: Ecc, data_len: int) -> int:
    """Smallest version holding ``data_len`` bytes in byte mode at ``ecl``."""
    ecl = Ecc(ecl)
    try:
        bit_length = calc_segment_bit_length(Mode.BYTE, data_len)
    except ValueError as exc:
        raise DataTooLongError(str(exc)) from exc
    seg = Segment(Mode.BYTE, data_len, bytes((bit_length + 7) // 8), bit_length)
    for version in range(VERSION_MIN, VERSION_MAX + 1):
        used = get_total_bits([seg], version)
        if used is not None and used <= get_num_data_codewords(version, ecl) * 8:
            return version
    raise DataTooLongError(f"{data_len} bytes do not fit in any version")


class _Canvas:
    """Module grid under construction, tracking which modules are function modules."""

    def __init__(self, version: int) -> None:
        self.version = version
        self.size = version_to_size(version)
        self.modules = [[False] * self.size for _ in range(self.size)]
        self.function = [[False] * self.size for _ in range(self.size)]
        self._draw_function_patterns()

    def _set_function(self, x: int, y: int, dark: bool) -> None:
        self.modules[y][x] = dark
        self.function[y][x] = True

    def _draw_function_patterns(self) -> None:
        size = self.size
        for i in range(size):
            self._set_function(6, i, i % 2 == 0)
            self._set_function(i, 6, i % 2 == 0)

        for cx, cy in ((3, 3), (size - 4, 3), (3, size - 4)):
            for dy in range(-4, 5):
                for dx in range(-4, 5):
                    x, y = cx + dx, cy + dy
                    if 0 <= x < size and 0 <= y < size:
                        self._set_function(x, y, max(abs(dx), abs(dy)) not in (2, 4))

        positions = alignment_pattern_positions(self.version)
        last = len(positions) - 1
        for i, px in enumerate(positions):
            for j, py in enumerate(positions):
                if (i, j) in ((0, 0), (0, last), (last, 0)):
                    continue
                for dy in range(-2, 3):
                    for dx in range(-2, 3):
                        self._set_function(px + dx, py + dy, max(abs(dx), abs(dy)) != 1)

        # Reserve the format areas; the real bits are drawn once the mask is known.
        self.draw_format_bits(Ecc.LOW, 0)
        self._draw_version()

    def _draw_version(self) -> None:
        if self.version < 7:
            return
        rem = self.version
        for _ in range(12):
            rem = (rem << 1) ^ ((rem >> 11) * 0x1F25)
        bits = self.version << 12 | rem
        for i in range(6):
            for j in range(3):
                k = self.size - 11 + j
                dark = bits & 1 != 0
                self._set_function(k, i, dark)
                self._set_function(i, k, dark)
                bits >>= 1

    def draw_format_bits(self, ecl: Ecc, mask: int) -> None:
        data = _FORMAT_ECC_BITS[ecl] << 3 | mask
        rem = data
        for _ in range(10):
            rem = (rem << 1) ^ ((rem >> 9) * 0x537)
        bits = (data << 10 | rem) ^ 0x5412

        def bit(i: int) -> bool:
            return (bits >> i) & 1 != 0

        size = self.size
        for i in range(6):
            self._set_function(8, i, bit(i))
        self._set_function(8, 7, bit(6))
        self._set_function(8, 8, bit(7))
        self._set_function(7, 8, bit(8))
        for i in range(9, 15):
            self._set_function(14 - i, 8, bit(i))
        for i in range(8):
            self._set_function(size - 1 - i, 8, bit(i))
        for i in range(8, 15):
            self._set_function(8, size - 15 + i, bit(i))
        self._set_function(8, size - 8, True)

    def draw_codewords(self, data: bytes) -> None:
        size = self.size
        total = len(data) * 8
        i = 0
        right = size - 1
        while right >= 1:
            if right == 6:
                right = 5
            upward = ((right + 1) & 2) == 0
            for vert in range(size):
                y = size - 1 - vert if upward else vert
                for x in (right, right - 1):
                    if not self.function[y][x] and i < total:
                        self.modules[y][x] = (data[i >> 3] >> (7 - (i & 7))) & 1 == 1
                        i += 1
            right -= 2
        # Remainder bits, if any, stay light.
        assert i == total

    def apply_mask(self, mask: int) -> None:
        pattern = _MASK_PATTERNS[mask]
        for y, (row, func_row) in enumerate(zip(self.modules, self.function)):
            for x, is_function in enumerate(func_row):
                if not is_function and pattern(x, y):
                    row[x] = not row[x]

    def penalty_score(self) -> int:
        size = self.size
        rows = self.modules
        columns = [list(col) for col in zip(*rows)]
        result = sum(_line_penalty(line) for line in rows)
        result += sum(_line_penalty(line) for line in columns)

        for y in range(size - 1):
            for x in range(size - 1):
                color = rows[y][x]
                if color == rows[y][x + 1] == rows[y + 1][x] == rows[y + 1][x + 1]:
                    result += _PENALTY_N2

        dark = sum(sum(row) for row in rows)
        total = size * size
        k = (abs(dark * 20 - total * 10) + total - 1) // total - 1
        return result + k * _PENALTY_N4


def _has_finder_like_pattern(history: Sequence[int]) -> bool:
    n = history[1]
    return (
        n > 0
        and history[2] == n
        and history[4] == n
        and history[5] == n
        and history[3] == n * 3
        and (history[0] >= n * 4 or history[6] >= n * 4)
    )


def _line_penalty(line: Sequence[bool]) -> int:
    result = 0
    history: deque[int] = deque([0] * 7, maxlen=7)
    color = False
    run = 0
    for cell in line:
        if cell == color:
            run += 1
            if run == 5:
                result += _PENALTY_N1
            elif run > 5:
                result += 1
        else:
            history.appendleft(run)
            if not color and _has_finder_like_pattern(history):
                result += _PENALTY_N3
            color = cell
            run = 1
    history.appendleft(run)
    if color:
        history.appendleft(0)  # a light run closes the line
    if _has_finder_like_pattern(history):
        result += _PENALTY_N3
    return result


def _normalise_mask(mask: Optional[int]) -> int:
    if mask is None:
        return MASK_AUTO
    if not MASK_AUTO <= mask <= 7:
        raise ValueError(f"mask out of range: {mask}")
    return int(mask)


def encode_segments_advanced(
    segs: Iterable[Segment],
    ecl: Ecc = Ecc.LOW,
    min_version: int = VERSION_MIN,
    max_version: int = VERSION_MAX,
    mask: Optional[int] = MASK_AUTO,
    boost_ecl: bool = True,
) -> QrCode:
    """Encode ``segs`` at the smallest version in [min_version, max_version].

    With ``boost_ecl`` the error correction level is raised as far as the
    chosen version allows. ``mask`` is 0-7 to force a mask, or -1 (or None)
    to pick the one with the lowest penalty. Raises DataTooLongError when
    the data fits no version in the range.
    """
    segs = list(segs)
    ecl = Ecc(ecl)
    if not VERSION_MIN <= min_version <= max_version <= VERSION_MAX:
        raise ValueError(f"invalid version range: {min_version}..{max_version}")
    mask = _normalise_mask(mask)

    for version in range(min_version, max_version + 1):
        used = get_total_bits(segs, version)
        if used is not None and used <= get_num_data_codewords(version, ecl) * 8:
            break
    else:
        raise DataTooLongError("data does not fit in the allowed version range")

    if boost_ecl:
        for candidate in (Ecc.MEDIUM, Ecc.QUARTILE, Ecc.HIGH):
            if used <= get_num_data_codewords(version, candidate) * 8:
                ecl = candidate

    bits: list[int] = []

    def append(value: int, count: int) -> None:
        bits.extend((value >> i) & 1 for i in reversed(range(count)))

    for seg in segs:
        append(int(seg.mode), 4)
        append(seg.num_chars, num_char_count_bits(seg.mode, version))
        bits.extend((seg.data[j >> 3] >> (7 - (j & 7))) & 1 for j in range(seg.bit_length))
    assert len(bits) == used

    capacity = get_num_data_codewords(version, ecl) * 8
    append(0, min(4, capacity - len(bits)))
    append(0, (8 - len(bits) % 8) % 8)
    for pad in cycle((0xEC, 0x11)):
        if len(bits) >= capacity:
            break
        append(pad, 8)

    data = bytes(
        sum(bit << (7 - k) for k, bit in enumerate(bits[i : i + 8]))
        for i in range(0, len(bits), 8)
    )
    codewords = add_ecc_and_interleave(data, version, ecl)
    assert len(codewords) == get_num_raw_data_modules(version) // 8

    canvas = _Canvas(version)
    canvas.draw_codewords(codewords)

    if mask == MASK_AUTO:
        best_penalty: Optional[int] = None
        for candidate in range(8):
            canvas.apply_mask(candidate)
            canvas.draw_format_bits(ecl, candidate)
            penalty = canvas.penalty_score()
            if best_penalty is None or penalty < best_penalty:
                mask, best_penalty = candidate, penalty
            canvas.apply_mask(candidate)  # XOR again to undo

    canvas.apply_mask(mask)
    canvas.draw_format_bits(ecl, mask)
    return QrCode(version, ecl, mask, tuple(tuple(row) for row in canvas.modules))


def encode_segments(segs: Iterable[Segment], ecl: Ecc = Ecc.LOW) -> QrCode:
    """Encode ``segs`` over all versions with automatic mask and boosted ECC."""
    return encode_segments_advanced(segs, ecl, VERSION_MIN, VERSION_MAX, MASK_AUTO, True)


def encode_text(
    text: str,
    ecl: Ecc = Ecc.LOW,
    min_version: int = VERSION_MIN,
    max_version: int = VERSION_MAX,
    mask: Optional[int] = MASK_AUTO,
    boost_ecl: bool = True,
) -> QrCode:
    """Encode text in numeric, alphanumeric or UTF-8 byte mode, whichever applies."""
    segs: list[Segment] = []
    if text:
        try:
            if is_numeric(text):
                segs.append(make_numeric(text))
            elif is_alphanumeric(text):
                segs.append(make_alphanumeric(text))
            else:
                segs.append(make_bytes(text.encode("utf-8")))
        except ValueError as exc:
            raise DataTooLongError(str(exc)) from exc
    return encode_segments_advanced(segs, ecl, min_version, max_version, mask, boost_ecl)


def encode_binary(
    data: bytes,
    ecl: Ecc = Ecc.LOW,
    min_version: int = VERSION_MIN,
    max_version: int = VERSION_MAX,
    mask: Optional[int] = MASK_AUTO,
    boost_ecl: bool = True,
) -> QrCode:
    """Encode raw bytes in byte mode."""
    try:
        seg = make_bytes(data)
    except ValueError as exc:
        raise DataTooLongError(str(exc)) from exc
    return encode_segments_advanced([seg], ecl, min_version, max_version, mask, boost_ecl)