"""Reed-Solomon error correction for QR Codes.

Covers codeword capacities per version and error correction level, the
GF(2^8) arithmetic (modulo 0x11D), and splitting data into blocks whose
error correction codewords are appended and interleaved.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Sequence

from acremote.qr_segment import VERSION_MAX, VERSION_MIN

REED_SOLOMON_DEGREE_MAX = 30
_FIELD_POLYNOMIAL = 0x11D


class Ecc(IntEnum):
    """Error correction level, in ascending order of protection."""

    LOW = 0  # tolerates about 7% erroneous codewords
    MEDIUM = 1  # about 15%
    QUARTILE = 2  # about 25%
    HIGH = 3  # about 30%


# Index 0 is padding; versions run from 1 to 40.
_ECC_CODEWORDS_PER_BLOCK = (
    (-1, 7, 10, 15, 20, 26, 18, 20, 24, 30, 18, 20, 24, 26, 30, 22, 24, 28, 30, 28, 28,
     28, 28, 30, 30, 26, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
    (-1, 10, 16, 26, 18, 24, 16, 18, 22, 22, 26, 30, 22, 22, 24, 24, 28, 28, 26, 26, 26,
     26, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28),
    (-1, 13, 22, 18, 26, 18, 24, 18, 22, 20, 24, 28, 26, 24, 20, 30, 24, 28, 28, 26, 30,
     28, 30, 30, 30, 30, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
    (-1, 17, 28, 22, 16, 22, 28, 26, 26, 24, 28, 24, 28, 22, 24, 24, 30, 28, 28, 26, 28,
     30, 24, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
)

_NUM_ERROR_CORRECTION_BLOCKS = (
    (-1, 1, 1, 1, 1, 1, 2, 2, 2, 2, 4, 4, 4, 4, 4, 6, 6, 6, 6, 7, 8,
     8, 9, 9, 10, 12, 12, 12, 13, 14, 15, 16, 17, 18, 19, 19, 20, 21, 22, 24, 25),
    (-1, 1, 1, 1, 2, 2, 4, 4, 4, 5, 5, 5, 8, 9, 9, 10, 10, 11, 13, 14, 16,
     17, 17, 18, 20, 21, 23, 25, 26, 28, 29, 31, 33, 35, 37, 38, 40, 43, 45, 47, 49),
    (-1, 1, 1, 2, 2, 4, 4, 6, 6, 8, 8, 8, 10, 12, 16, 12, 17, 16, 18, 21, 20,
     23, 23, 25, 27, 29, 34, 34, 35, 38, 40, 43, 45, 48, 51, 53, 56, 59, 62, 65, 68),
    (-1, 1, 1, 2, 4, 4, 4, 5, 6, 8, 8, 11, 11, 16, 16, 18, 16, 19, 21, 25, 25,
     25, 34, 30, 32, 35, 37, 40, 42, 45, 48, 51, 54, 57, 60, 63, 66, 70, 74, 77, 81),
)


def _check_version(version: int) -> None:
    if not VERSION_MIN <= version <= VERSION_MAX:
        raise ValueError(f"version out of range: {version}")


def ecc_codewords_per_block(version: int, ecl: Ecc) -> int:
    """Error correction codewords in each block."""
    _check_version(version)
    return _ECC_CODEWORDS_PER_BLOCK[Ecc(ecl)][version]


def num_error_correction_blocks(version: int, ecl: Ecc) -> int:
    """Number of blocks the codewords are split into."""
    _check_version(version)
    return _NUM_ERROR_CORRECTION_BLOCKS[Ecc(ecl)][version]


def get_num_raw_data_modules(ver: int) -> int:
    """Data bits a symbol of version ``ver`` holds once function modules are excluded.

    Remainder bits are included, so the result need not be a multiple of 8.
    """
    _check_version(ver)
    result = (16 * ver + 128) * ver + 64
    if ver >= 2:
        num_align = ver // 7 + 2
        result -= (25 * num_align - 10) * num_align - 55
        if ver >= 7:
            result -= 36
    return result


def get_num_data_codewords(version: int, ecl: Ecc) -> int:
    """8-bit codewords available for data (not ECC) at ``version`` and ``ecl``."""
    return (
        get_num_raw_data_modules(version) // 8
        - ecc_codewords_per_block(version, ecl) * num_error_correction_blocks(version, ecl)
    )


def finite_field_multiply(x: int, y: int) -> int:
    """Product of two elements of GF(2^8) modulo 0x11D."""
    if not (0 <= x <= 0xFF and 0 <= y <= 0xFF):
        raise ValueError(f"field elements must be bytes: {x}, {y}")
    z = 0
    for i in reversed(range(8)):
        z = (z << 1) ^ ((z >> 7) * _FIELD_POLYNOMIAL)
        z ^= ((y >> i) & 1) * x
    return z


def reed_solomon_generator(degree: int) -> bytes:
    """Coefficients of the generator polynomial of ``degree``, highest power dropped.

    The product (x - r^0)(x - r^1)...(x - r^(degree-1)) with r = 0x02 is
    returned in order of descending powers, without the leading 1.
    """
    if not 1 <= degree <= REED_SOLOMON_DEGREE_MAX:
        raise ValueError(f"degree out of range: {degree}")
    result = [0] * degree
    result[-1] = 1
    root = 1
    for _ in range(degree):
        for j in range(degree):
            result[j] = finite_field_multiply(result[j], root)
            if j + 1 < degree:
                result[j] ^= result[j + 1]
        root = finite_field_multiply(root, 0x02)
    return bytes(result)


def reed_solomon_remainder(data: Sequence[int], generator: Sequence[int]) -> bytes:
    """Remainder of ``data`` divided by ``generator`` (implicit leading 1)."""
    degree = len(generator)
    if not 1 <= degree <= REED_SOLOMON_DEGREE_MAX:
        raise ValueError(f"generator degree out of range: {degree}")
    result = [0] * degree
    for byte in data:
        factor = byte ^ result[0]
        result = result[1:] + [0]
        for j, coef in enumerate(generator):
            result[j] ^= finite_field_multiply(coef, factor)
    return bytes(result)


def add_ecc_and_interleave(data: Sequence[int], version: int, ecl: Ecc) -> bytes:
    """Split ``data`` into blocks, append ECC to each and interleave them.

    ``data`` must hold exactly the number of data codewords for ``version``
    and ``ecl``; the result holds every raw codeword of the symbol.
    """
    ecl = Ecc(ecl)
    data_len = get_num_data_codewords(version, ecl)
    if len(data) != data_len:
        raise ValueError(f"expected {data_len} data codewords, got {len(data)}")

    num_blocks = num_error_correction_blocks(version, ecl)
    block_ecc_len = ecc_codewords_per_block(version, ecl)
    raw_codewords = get_num_raw_data_modules(version) // 8
    num_short_blocks = num_blocks - raw_codewords % num_blocks
    short_block_data_len = raw_codewords // num_blocks - block_ecc_len

    generator = reed_solomon_generator(block_ecc_len)
    blocks: list[bytes] = []
    eccs: list[bytes] = []
    offset = 0
    for i in range(num_blocks):
        length = short_block_data_len + (0 if i < num_short_blocks else 1)
        block = bytes(data[offset : offset + length])
        offset += length
        blocks.append(block)
        eccs.append(reed_solomon_remainder(block, generator))

    result = bytearray()
    for j in range(short_block_data_len + 1):
        result.extend(block[j] for block in blocks if j < len(block))
    for j in range(block_ecc_len):
        result.extend(ecc[j] for ecc in eccs)
    assert len(result) == raw_codewords
    return bytes(result)