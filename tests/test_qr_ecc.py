import pytest

from acremote.qr_ecc import (
    Ecc,
    add_ecc_and_interleave,
    finite_field_multiply,
    get_num_data_codewords,
    get_num_raw_data_modules,
    reed_solomon_generator,
    reed_solomon_remainder,
)


def _evaluate(poly, x):
    acc = 0
    for coef in poly:
        acc = finite_field_multiply(acc, x) ^ coef
    return acc


def _power_of_two(n):
    value = 1
    for _ in range(n):
        value = finite_field_multiply(value, 2)
    return value


def test_raw_data_modules_documented_range():
    assert get_num_raw_data_modules(1) == 208
    assert get_num_raw_data_modules(40) == 29648


def test_raw_data_modules_increase_with_version():
    values = [get_num_raw_data_modules(v) for v in range(1, 41)]
    assert values == sorted(values)
    assert len(set(values)) == 40


def test_data_codewords_documented_range():
    assert get_num_data_codewords(1, Ecc.HIGH) == 9
    assert get_num_data_codewords(40, Ecc.LOW) == 2956


@pytest.mark.parametrize("version", [1, 5, 10, 27, 40])
def test_data_codewords_decrease_with_ecc_level(version):
    counts = [get_num_data_codewords(version, ecl) for ecl in Ecc]
    assert counts == sorted(counts, reverse=True)
    assert counts[0] < get_num_raw_data_modules(version) // 8


@pytest.mark.parametrize("version", [0, 41, -1])
def test_invalid_version_rejected(version):
    with pytest.raises(ValueError):
        get_num_raw_data_modules(version)
    with pytest.raises(ValueError):
        get_num_data_codewords(version, Ecc.LOW)


def test_field_multiply_reduces_by_polynomial():
    assert finite_field_multiply(0x80, 0x02) == 0x1D


@pytest.mark.parametrize("x,y", [(0, 0), (1, 200), (0x53, 0xCA), (255, 255), (17, 91)])
def test_field_multiply_properties(x, y):
    assert finite_field_multiply(x, y) == finite_field_multiply(y, x)
    assert finite_field_multiply(x, 1) == x
    assert finite_field_multiply(x, 0) == 0
    z = 0x35
    assert finite_field_multiply(x, y ^ z) == (
        finite_field_multiply(x, y) ^ finite_field_multiply(x, z)
    )


def test_field_multiply_rejects_non_bytes():
    with pytest.raises(ValueError):
        finite_field_multiply(256, 1)
    with pytest.raises(ValueError):
        finite_field_multiply(1, -1)


def test_generator_degree_one():
    assert reed_solomon_generator(1) == b"\x01"


@pytest.mark.parametrize("degree", [1, 7, 10, 30])
def test_generator_has_expected_roots(degree):
    gen = reed_solomon_generator(degree)
    assert len(gen) == degree
    poly = [1] + list(gen)
    for i in range(degree):
        assert _evaluate(poly, _power_of_two(i)) == 0


@pytest.mark.parametrize("degree", [0, 31])
def test_generator_degree_out_of_range(degree):
    with pytest.raises(ValueError):
        reed_solomon_generator(degree)


def test_remainder_of_zero_data_is_zero():
    gen = reed_solomon_generator(10)
    assert reed_solomon_remainder(bytes(16), gen) == bytes(10)


@pytest.mark.parametrize("degree", [7, 13, 22])
def test_codeword_with_remainder_is_divisible(degree):
    data = bytes((i * 37 + 11) & 0xFF for i in range(20))
    gen = reed_solomon_generator(degree)
    ecc = reed_solomon_remainder(data, gen)
    assert len(ecc) == degree
    codeword = list(data) + list(ecc)
    for i in range(degree):
        assert _evaluate(codeword, _power_of_two(i)) == 0
    assert reed_solomon_remainder(codeword, gen) == bytes(degree)


def test_remainder_rejects_empty_generator():
    with pytest.raises(ValueError):
        reed_solomon_remainder(b"\x01\x02", b"")


def test_single_block_interleave_is_data_then_ecc():
    n = get_num_data_codewords(1, Ecc.LOW)
    data = bytes(range(1, n + 1))
    result = add_ecc_and_interleave(data, 1, Ecc.LOW)
    ecc_len = get_num_raw_data_modules(1) // 8 - n
    assert result[:n] == data
    assert result[n:] == reed_solomon_remainder(data, reed_solomon_generator(ecc_len))


@pytest.mark.parametrize("version,ecl", [(5, Ecc.QUARTILE), (6, Ecc.LOW), (9, Ecc.HIGH)])
def test_multi_block_interleave_keeps_all_data(version, ecl):
    n = get_num_data_codewords(version, ecl)
    data = bytes(i % 251 for i in range(n))
    result = add_ecc_and_interleave(data, version, ecl)
    assert len(result) == get_num_raw_data_modules(version) // 8
    assert sorted(result[:n]) == sorted(data)
    assert result[0] == data[0]


def test_interleave_rejects_wrong_length():
    n = get_num_data_codewords(2, Ecc.MEDIUM)
    with pytest.raises(ValueError):
        add_ecc_and_interleave(bytes(n - 1), 2, Ecc.MEDIUM)