import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from acremote.hw_pairing import (
    FNV_BASIS,
    FORBIDDEN_PASSCODES,
    ITERATIONS,
    PASSCODE_MAX,
    PASSCODE_SEED,
    SALT_LENGTH,
    SALT_SEED,
    VERIFIER_LENGTH,
    PairingCredentials,
    derive_credentials,
    fnv1a32,
    make_passcode,
    spake2p_verifier,
)

ID0 = 0x01020304
ID1 = 0x0A0B0C0D
RAW = ID0.to_bytes(4, "little") + ID1.to_bytes(4, "little")
DISCRIMINATOR_SEED = 0xD15C0001
P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551


def test_fnv_empty_returns_seed():
    assert fnv1a32(b"", 0xD15C0001) == 0xD15C0001


def test_fnv_standard_vector():
    assert fnv1a32(b"a", FNV_BASIS) == 0xE40C292C


def test_fnv_is_order_sensitive_and_32_bit():
    a = fnv1a32(b"\x01\x02", FNV_BASIS)
    b = fnv1a32(b"\x02\x01", FNV_BASIS)
    assert a != b
    assert 0 <= a <= 0xFFFFFFFF


def test_passcode_range_limits():
    assert make_passcode(0) == 1
    assert make_passcode(PASSCODE_MAX - 1) == PASSCODE_MAX
    assert make_passcode(PASSCODE_MAX) == 1


@pytest.mark.parametrize("forbidden", [f for f in FORBIDDEN_PASSCODES if f])
def test_forbidden_passcode_is_bumped(forbidden):
    code = make_passcode(forbidden - 1)
    assert code == forbidden + 1
    assert code not in FORBIDDEN_PASSCODES


@pytest.mark.parametrize("h", [0, 1, 12345, 0xFFFFFFFF, 0xDEADBEEF])
def test_passcode_always_valid(h):
    code = make_passcode(h)
    assert 1 <= code <= PASSCODE_MAX
    assert code not in FORBIDDEN_PASSCODES


def test_derive_discriminator_comes_from_hash():
    creds = derive_credentials(ID0, ID1)
    assert creds.discriminator == fnv1a32(RAW, DISCRIMINATOR_SEED) & 0x0FFF
    again = derive_credentials(ID0, ID1)
    assert (again.discriminator, again.passcode, again.salt) == (
        creds.discriminator,
        creds.passcode,
        creds.salt,
    )


def test_derive_fields_are_in_range():
    creds = derive_credentials(ID0, ID1)
    assert 0 <= creds.discriminator <= 0x0FFF
    assert 1 <= creds.passcode <= PASSCODE_MAX
    assert len(creds.salt) == SALT_LENGTH
    assert creds.iterations == ITERATIONS


def test_derive_uses_domain_separated_hashes():
    creds = derive_credentials(ID0, ID1)
    assert creds.passcode == make_passcode(fnv1a32(RAW, PASSCODE_SEED))
    assert creds.salt[:4] == fnv1a32(RAW, SALT_SEED).to_bytes(4, "little")
    assert creds.salt[12:] == fnv1a32(RAW, SALT_SEED + 3).to_bytes(4, "little")


def test_different_ids_give_different_credentials():
    assert derive_credentials(ID0, ID1) != derive_credentials(ID1, ID0)


@pytest.mark.parametrize("ids", [(-1, 0), (0, 1 << 32)])
def test_derive_rejects_non_32_bit_ids(ids):
    with pytest.raises(ValueError):
        derive_credentials(*ids)


def test_verifier_structure():
    creds = derive_credentials(ID0, ID1)
    verifier = creds.verifier()
    assert len(verifier) == VERIFIER_LENGTH
    assert int.from_bytes(verifier[:32], "big") < P256_ORDER
    assert verifier[32] == 0x04
    point = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), verifier[32:])
    assert point.public_numbers().x == int.from_bytes(verifier[33:65], "big")


def test_verifier_depends_on_passcode_and_salt():
    salt = bytes(range(16))
    base = spake2p_verifier(20202021, salt, 1000)
    assert base == spake2p_verifier(20202021, salt, 1000)
    assert base != spake2p_verifier(20202022, salt, 1000)
    assert base != spake2p_verifier(20202021, bytes(16), 1000)


def test_credentials_verifier_matches_function():
    creds = PairingCredentials(0x0F00, 20202021, bytes(range(16)))
    assert creds.verifier() == spake2p_verifier(20202021, bytes(range(16)), ITERATIONS)


def test_verifier_rejects_bad_arguments():
    with pytest.raises(ValueError):
        spake2p_verifier(1 << 32, bytes(16))
    with pytest.raises(ValueError):
        spake2p_verifier(1, bytes(16), 0)