import os
import hashlib
import hmac

from .errors import KeyFormatError

KEY_BYTE_SIZE = 32
KEY_HEADER = b"\xde\xf0\x00\x01"
CHECKSUM_BYTE_SIZE = 32
SERIALIZED_BYTE_SIZE = len(KEY_HEADER) + KEY_BYTE_SIZE + CHECKSUM_BYTE_SIZE


class FileKey:
    """
    Per-file AES-256 key. One key is generated for every uploaded file
    and never reused.
    """

    __slots__ = ("raw",)

    def __init__(self, raw: bytes):
        if len(raw) != KEY_BYTE_SIZE:
            raise KeyFormatError(f"Key must be {KEY_BYTE_SIZE} bytes.")
        self.raw = raw

    def __eq__(self, other):
        if not isinstance(other, FileKey):
            return NotImplemented
        return hmac.compare_digest(self.raw, other.raw)

    def __hash__(self):
        return hash(self.raw)

    def __repr__(self):
        return "FileKey(<redacted>)"


def generate_key() -> FileKey:
    """
    Generates a fresh random symmetric File Key (32 bytes).
    """
    return FileKey(os.urandom(KEY_BYTE_SIZE))


def serialize_key(key: FileKey) -> str:
    """
    Encodes the key as an ASCII-safe string for storage next to the file
    metadata: hex(header || key || sha256(header || key)).
    """
    body = KEY_HEADER + key.raw
    checksum = hashlib.sha256(body).digest()
    return (body + checksum).hex()


def deserialize_key(encoded: str) -> FileKey:
    """
    Loads a key saved with serialize_key.
    Raises KeyFormatError if the string is malformed, truncated or was altered.
    """
    try:
        data = bytes.fromhex(encoded)
    except (TypeError, ValueError):
        raise KeyFormatError("Encoded key is not valid hex.")

    if len(data) != SERIALIZED_BYTE_SIZE:
        raise KeyFormatError("Encoded key has the wrong length.")

    header = data[:len(KEY_HEADER)]
    if header != KEY_HEADER:
        raise KeyFormatError("Encoded key has an unknown version header.")

    body = data[:-CHECKSUM_BYTE_SIZE]
    checksum = data[-CHECKSUM_BYTE_SIZE:]
    if not hmac.compare_digest(hashlib.sha256(body).digest(), checksum):
        raise KeyFormatError("Encoded key checksum mismatch.")

    return FileKey(body[len(KEY_HEADER):])
