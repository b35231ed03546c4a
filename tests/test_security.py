"""Tests for random identifiers and credential hashing."""

from unittest.mock import patch

from shortlink.core import security
from shortlink.core.security import (
    BASE62_ALPHABET,
    generate_manage_token,
    hash_manage_token,
    hash_password,
    random_base62,
    verify_password,
)


def test_random_base62_length_and_alphabet():
    for length in (1, 8, 32, 100):
        value = random_base62(length)
        assert len(value) == length
        assert set(value) <= set(BASE62_ALPHABET)


def test_random_base62_rejects_biased_bytes():
    # 248 and above would favour the first characters of the alphabet
    draws = iter([bytes([255, 248, 0, 61]), bytes([250, 62, 121, 1])])
    with patch.object(security.secrets, "token_bytes", side_effect=lambda n: next(draws)):
        value = random_base62(4)

    assert value == "0z0x"


def test_manage_token_hash():
    token, token_hash = generate_manage_token(32)

    assert len(token) == 32
    assert token_hash == hash_manage_token(token)
    assert len(token_hash) == 64
    assert token_hash != token


def test_password_roundtrip():
    hashed = hash_password("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed) is True
    assert verify_password("wrong horse", hashed) is False


def test_verify_password_rejects_garbage():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
    assert verify_password("x" * 73, hash_password("x" * 72)) is False


def test_lone_surrogates_never_match():
    assert verify_password("\ud800", hash_password("pw")) is False
    assert len(hash_manage_token("\ud800")) == 64
    assert hash_manage_token("\ud800") != hash_manage_token("\udc00")
