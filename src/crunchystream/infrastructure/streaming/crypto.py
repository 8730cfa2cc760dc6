"""AES-128-CBC segment decryption."""

from __future__ import annotations

from Crypto.Cipher import AES
from Crypto.Util.Padding import unpad

from crunchystream.domain.entities.segment import DecryptionKey
from crunchystream.domain.exceptions import CryptoError


def derive_iv(key: bytes, declared_iv: str | None) -> bytes:
    """IV for an ``EXT-X-KEY`` declaration.

    Upstream playlists without an IV expect the key bytes to double as IV.
    """
    if not declared_iv:
        return key
    text = declared_iv.strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        iv = bytes.fromhex(text.rjust(32, "0"))
    except ValueError as exc:
        raise CryptoError(f"invalid IV {declared_iv!r}") from exc
    if len(iv) != AES.block_size:
        raise CryptoError(f"IV must be {AES.block_size} bytes, got {len(iv)}")
    return iv


def decrypt(data: bytes, key: DecryptionKey) -> bytes:
    """Decrypt one whole segment and strip its PKCS7 padding.

    Every segment starts a fresh CBC chain with the key's IV.
    """
    if len(key.key) != 16:
        raise CryptoError(f"AES-128 key must be 16 bytes, got {len(key.key)}")
    if len(data) % AES.block_size:
        raise CryptoError(
            f"ciphertext length {len(data)} is not a multiple of {AES.block_size}"
        )
    try:
        cipher = AES.new(key.key, AES.MODE_CBC, iv=key.iv)
        return unpad(cipher.decrypt(data), AES.block_size, style="pkcs7")
    except ValueError as exc:
        raise CryptoError(f"segment decryption failed: {exc}") from exc
