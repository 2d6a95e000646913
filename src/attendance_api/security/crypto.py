from __future__ import annotations

import base64
import binascii
import logging
import os
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.constants import AES_KEY_BYTES, AES_NONCE_BYTES, AES_TAG_BYTES
from ..core.exceptions import CryptoError

logger = logging.getLogger(__name__)


def derive_key(key_material: Union[str, bytes]) -> bytes:
    """Copy up to 32 bytes of key material into a zero-padded 32-byte key.

    A string is base64-decoded when it is valid base64, otherwise its UTF-8
    bytes are used as-is.
    """
    if isinstance(key_material, str):
        try:
            raw = base64.b64decode(key_material, validate=True)
        except (binascii.Error, ValueError):
            raw = key_material.encode("utf-8")
    else:
        raw = bytes(key_material)

    return raw[:AES_KEY_BYTES].ljust(AES_KEY_BYTES, b"\0")


class SecretCodec:
    """AES-GCM encryption for TOTP secrets stored on user records.

    Without a key the codec runs in pass-through mode: encrypt/decrypt return
    their input unchanged.
    """

    def __init__(self, key_material: Optional[Union[str, bytes]] = None):
        if not key_material:
            self._aead: Optional[AESGCM] = None
            logger.warning(
                "Two-factor encryption key not set: secrets will be stored in plaintext. "
                "Set TWO_FACTOR_ENCRYPTION_KEY to enable encryption."
            )
        else:
            self._aead = AESGCM(derive_key(key_material))

    @property
    def enabled(self) -> bool:
        return self._aead is not None

    def encrypt(self, plaintext: str) -> str:
        if self._aead is None:
            return plaintext

        nonce = os.urandom(AES_NONCE_BYTES)
        try:
            sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        except (TypeError, ValueError, OverflowError) as exc:
            logger.error("Error encrypting data", exc_info=True)
            raise CryptoError("Failed to encrypt secret") from exc
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, blob: str) -> str:
        if self._aead is None:
            return blob

        try:
            data = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError) as exc:
            logger.error("Error decrypting data: malformed ciphertext")
            raise CryptoError("Malformed encrypted secret") from exc

        if len(data) < AES_NONCE_BYTES + AES_TAG_BYTES:
            logger.error("Error decrypting data: ciphertext too short")
            raise CryptoError("Malformed encrypted secret")

        nonce, sealed = data[:AES_NONCE_BYTES], data[AES_NONCE_BYTES:]
        try:
            plain = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            logger.error("Error decrypting data: authentication tag mismatch")
            raise CryptoError("Encrypted secret failed authentication") from exc

        try:
            return plain.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.error("Error decrypting data: plaintext is not UTF-8")
            raise CryptoError("Malformed encrypted secret") from exc
