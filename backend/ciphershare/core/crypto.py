import os
import struct
from typing import List

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionError
from .keys import FileKey

MAGIC = b"CSE1"
NONCE_PREFIX_SIZE = 7
TAG_SIZE = 16
HEADER_SIZE = len(MAGIC) + 4 + NONCE_PREFIX_SIZE
MAX_CHUNKS = 2 ** 32

DEFAULT_CHUNK_SIZE = 64 * 1024


def _chunk_nonce(prefix: bytes, index: int, final: bool) -> bytes:
    # 7-byte random prefix || 4-byte counter || 1-byte final flag = 12 bytes
    return prefix + struct.pack(">I", index) + (b"\x01" if final else b"\x00")


def encrypt(plaintext: bytes, key: FileKey, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Encrypts a payload with AES-256-GCM in fixed-size chunks.

    Output layout:
      header = "CSE1" || chunk_size (u32) || nonce prefix (7 bytes)
      then one GCM ciphertext+tag per chunk.

    Each chunk authenticates the header as associated data and carries its
    position and a final-chunk flag in the nonce, so reordering, dropping
    or appending chunks is detected on decrypt.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    prefix = os.urandom(NONCE_PREFIX_SIZE)
    header = MAGIC + struct.pack(">I", chunk_size) + prefix

    chunks = [plaintext[i:i + chunk_size] for i in range(0, len(plaintext), chunk_size)]
    if not chunks:
        chunks = [b""]
    if len(chunks) > MAX_CHUNKS:
        raise ValueError("Payload too large for the configured chunk size")

    aesgcm = AESGCM(key.raw)
    last = len(chunks) - 1
    out = [header]
    for index, chunk in enumerate(chunks):
        nonce = _chunk_nonce(prefix, index, index == last)
        out.append(aesgcm.encrypt(nonce, chunk, header))
    return b"".join(out)


def decrypt(ciphertext: bytes, key: FileKey) -> bytes:
    """
    Decrypts a payload produced by encrypt().
    Raises DecryptionError on a wrong key, tampering or truncation.
    Nothing is returned unless every chunk authenticates.
    """
    if len(ciphertext) < HEADER_SIZE + TAG_SIZE:
        raise DecryptionError("Ciphertext is truncated.")

    header = ciphertext[:HEADER_SIZE]
    if header[:len(MAGIC)] != MAGIC:
        raise DecryptionError("Ciphertext has an unknown format.")

    (chunk_size,) = struct.unpack(">I", header[len(MAGIC):len(MAGIC) + 4])
    if chunk_size == 0:
        raise DecryptionError("Ciphertext header is corrupted.")
    prefix = header[len(MAGIC) + 4:]

    body = ciphertext[HEADER_SIZE:]
    stride = chunk_size + TAG_SIZE
    sealed = [body[i:i + stride] for i in range(0, len(body), stride)]
    if len(sealed) > MAX_CHUNKS:
        raise DecryptionError("Ciphertext has too many chunks.")

    aesgcm = AESGCM(key.raw)
    last = len(sealed) - 1
    plain: List[bytes] = []
    for index, chunk in enumerate(sealed):
        if len(chunk) < TAG_SIZE:
            raise DecryptionError("Ciphertext is truncated.")
        nonce = _chunk_nonce(prefix, index, index == last)
        try:
            plain.append(aesgcm.decrypt(nonce, chunk, header))
        except InvalidTag:
            raise DecryptionError("Authentication failed: wrong key or tampered content.")
    return b"".join(plain)
