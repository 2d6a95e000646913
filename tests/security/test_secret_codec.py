import base64

import pytest

from attendance_api.core.exceptions import CryptoError
from attendance_api.security.crypto import SecretCodec, derive_key

KEY = base64.b64encode(b"k" * 32).decode("ascii")


def test_encrypt_then_decrypt_returns_original():
    codec = SecretCodec(KEY)

    blob = codec.encrypt("JBSWY3DPEHPK3PXP")

    assert blob != "JBSWY3DPEHPK3PXP"
    assert codec.decrypt(blob) == "JBSWY3DPEHPK3PXP"


def test_encrypt_uses_fresh_nonce_each_time():
    codec = SecretCodec(KEY)

    assert codec.encrypt("same") != codec.encrypt("same")


def test_blob_is_nonce_plus_ciphertext_plus_tag():
    codec = SecretCodec(KEY)

    raw = base64.b64decode(codec.encrypt("abc"))

    assert len(raw) == 12 + 3 + 16


def test_tampered_blob_fails():
    codec = SecretCodec(KEY)
    raw = bytearray(base64.b64decode(codec.encrypt("secret")))
    raw[-1] ^= 0x01

    with pytest.raises(CryptoError):
        codec.decrypt(base64.b64encode(bytes(raw)).decode("ascii"))


def test_wrong_key_fails():
    blob = SecretCodec(KEY).encrypt("secret")
    other = SecretCodec(base64.b64encode(b"x" * 32).decode("ascii"))

    with pytest.raises(CryptoError):
        other.decrypt(blob)


@pytest.mark.parametrize("blob", ["not base64 !!", base64.b64encode(b"short").decode("ascii")])
def test_malformed_blob_fails(blob):
    with pytest.raises(CryptoError):
        SecretCodec(KEY).decrypt(blob)


def test_no_key_is_pass_through():
    codec = SecretCodec(None)

    assert codec.enabled is False
    assert codec.encrypt("plain") == "plain"
    assert codec.decrypt("plain") == "plain"


def test_derive_key_pads_and_truncates():
    assert derive_key(b"abc") == b"abc" + b"\0" * 29
    assert derive_key(b"z" * 40) == b"z" * 32


def test_derive_key_uses_raw_text_when_not_base64():
    assert derive_key("not-base64!") == b"not-base64!" + b"\0" * 21
