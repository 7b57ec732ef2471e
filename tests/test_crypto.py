"""Secret encryption tests."""

import base64

import pytest

from providerhub.errors import DecryptionError, EncryptionError
from providerhub.utils.crypto import (
    IV_LENGTH,
    SALT_LENGTH,
    SecretBox,
    generate_encryption_password,
    is_valid_encrypted_data,
)

PLAINTEXT = "sk-proj-abc123XYZ-secret"


@pytest.fixture
def box() -> SecretBox:
    return SecretBox("correct horse battery staple")


def _flip_byte(ciphertext: str, index: int) -> str:
    iv_part, sealed_part = ciphertext.split(":")
    sealed = bytearray(base64.b64decode(sealed_part))
    sealed[index] ^= 0x01
    return iv_part + ":" + base64.b64encode(bytes(sealed)).decode()


@pytest.mark.parametrize("plaintext", [PLAINTEXT, "", "ключ-🔑-with-unicode", "x" * 500])
def test_round_trip(box: SecretBox, plaintext: str):
    ciphertext, salt = box.encrypt(plaintext)
    assert box.decrypt(ciphertext, salt) == plaintext


def test_ciphertext_never_contains_plaintext(box: SecretBox):
    ciphertext, salt = box.encrypt(PLAINTEXT)
    assert PLAINTEXT not in ciphertext
    assert PLAINTEXT not in salt


def test_fresh_salt_and_iv_per_call(box: SecretBox):
    first_ct, first_salt = box.encrypt(PLAINTEXT)
    second_ct, second_salt = box.encrypt(PLAINTEXT)
    assert first_ct != second_ct
    assert first_salt != second_salt
    assert first_ct.split(":")[0] != second_ct.split(":")[0]

    assert len(base64.b64decode(first_salt)) == SALT_LENGTH
    assert len(base64.b64decode(first_ct.split(":")[0])) == IV_LENGTH


@pytest.mark.parametrize("index", [0, 5, -1])
def test_tampered_ciphertext_is_rejected(box: SecretBox, index: int):
    ciphertext, salt = box.encrypt(PLAINTEXT)
    with pytest.raises(DecryptionError):
        box.decrypt(_flip_byte(ciphertext, index), salt)


def test_tampered_iv_is_rejected(box: SecretBox):
    ciphertext, salt = box.encrypt(PLAINTEXT)
    iv_part, sealed_part = ciphertext.split(":")
    iv = bytearray(base64.b64decode(iv_part))
    iv[0] ^= 0xFF
    with pytest.raises(DecryptionError):
        box.decrypt(base64.b64encode(bytes(iv)).decode() + ":" + sealed_part, salt)


def test_corrupted_salt_is_rejected(box: SecretBox):
    ciphertext, _ = box.encrypt(PLAINTEXT)
    other_salt = base64.b64encode(b"\x00" * SALT_LENGTH).decode()
    with pytest.raises(DecryptionError):
        box.decrypt(ciphertext, other_salt)


def test_wrong_password_is_rejected(box: SecretBox):
    ciphertext, salt = box.encrypt(PLAINTEXT)
    with pytest.raises(DecryptionError, match="current password"):
        SecretBox("a different password").decrypt(ciphertext, salt)


@pytest.mark.parametrize(
    "ciphertext",
    ["", "no-separator", "a:b:c", "!!!:???", base64.b64encode(b"short").decode() + ":AAAA"],
)
def test_malformed_ciphertext_is_rejected(box: SecretBox, ciphertext: str):
    _, salt = box.encrypt(PLAINTEXT)
    with pytest.raises(DecryptionError):
        box.decrypt(ciphertext, salt)


def test_truncated_ciphertext_is_rejected(box: SecretBox):
    ciphertext, salt = box.encrypt(PLAINTEXT)
    iv_part, sealed_part = ciphertext.split(":")
    sealed = base64.b64decode(sealed_part)[:10]
    with pytest.raises(DecryptionError, match="truncated"):
        box.decrypt(iv_part + ":" + base64.b64encode(sealed).decode(), salt)


def test_missing_password():
    box = SecretBox("")
    assert box.configured is False
    with pytest.raises(EncryptionError):
        box.encrypt(PLAINTEXT)
    with pytest.raises(DecryptionError):
        box.decrypt("AAAA:BBBB", "CCCC")
    assert box.self_test() is False


def test_self_test(box: SecretBox):
    assert box.self_test() is True


def test_is_valid_encrypted_data(box: SecretBox):
    ciphertext, salt = box.encrypt(PLAINTEXT)
    assert is_valid_encrypted_data(ciphertext, salt) is True
    assert is_valid_encrypted_data("garbage", salt) is False
    assert is_valid_encrypted_data(ciphertext, base64.b64encode(b"short").decode()) is False


def test_generate_encryption_password():
    first = generate_encryption_password()
    assert len(first) == 32
    assert first != generate_encryption_password()
    assert SecretBox(generate_encryption_password(48)).self_test() is True
