from abc import ABC, abstractmethod
import hashlib
import logging
import os
import re
import tempfile
import threading

import requests

from ..core.errors import ContentNotFoundError, StoreUnavailableError
from ..core.settings import settings

logger = logging.getLogger(__name__)

SHA256_CID = re.compile(r"^[0-9a-f]{64}$")


class ContentStore(ABC):
    """
    Append-only blob store addressed by content identifier.
    The store never learns about owners or grants.
    """

    @abstractmethod
    def put(self, data: bytes) -> str:
        pass

    @abstractmethod
    def get(self, cid: str) -> bytes:
        pass


class MemoryContentStore(ContentStore):
    def __init__(self):
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes) -> str:
        cid = hashlib.sha256(data).hexdigest()
        with self._lock:
            self._blobs.setdefault(cid, bytes(data))
        return cid

    def get(self, cid: str) -> bytes:
        try:
            return self._blobs[cid]
        except KeyError:
            raise ContentNotFoundError(f"Unknown content identifier {cid}")


class LocalContentStore(ContentStore):
    """
    Stores blobs under root/ab/cd/<sha256>. Identical bytes dedupe.
    """

    def __init__(self, root: str):
        self.root = root
        os.makedirs(self.root, exist_ok=True)

    def _path(self, cid: str) -> str:
        return os.path.join(self.root, cid[:2], cid[2:4], cid)

    def put(self, data: bytes) -> str:
        cid = hashlib.sha256(data).hexdigest()
        path = self._path(cid)
        if os.path.exists(path):
            return cid

        directory = os.path.dirname(path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as buffer:
                buffer.write(data)
                buffer.flush()
                os.fsync(buffer.fileno())
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        return cid

    def get(self, cid: str) -> bytes:
        if not SHA256_CID.match(cid or ""):
            raise ContentNotFoundError(f"Malformed content identifier {cid!r}")
        path = self._path(cid)
        if not os.path.exists(path):
            raise ContentNotFoundError(f"Unknown content identifier {cid}")
        with open(path, "rb") as f:
            return f.read()


class IPFSContentStore(ContentStore):
    """
    Talks to a kubo (go-ipfs) node over its HTTP RPC API.
    """

    def __init__(self, api_url: str, timeout: int = 30):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def put(self, data: bytes) -> str:
        try:
            resp = requests.post(
                f"{self.api_url}/api/v0/add",
                params={"pin": "true", "cid-version": "1"},
                files={"file": ("blob", data)},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error uploading content to IPFS: {str(e)}")
            raise StoreUnavailableError()
        return resp.json()["Hash"]

    def get(self, cid: str) -> bytes:
        try:
            resp = requests.post(
                f"{self.api_url}/api/v0/cat",
                params={"arg": cid},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error reading content from IPFS: {str(e)}")
            raise StoreUnavailableError()

        # The RPC API answers unknown or invalid CIDs with a 500 and an error body
        if resp.status_code == 500:
            raise ContentNotFoundError(f"Unknown content identifier {cid}")
        if resp.status_code != 200:
            logger.error(f"IPFS cat returned {resp.status_code}: {resp.text}")
            raise StoreUnavailableError()
        return resp.content


_store: ContentStore | None = None
_store_lock = threading.Lock()


def build_content_store(kind: str | None = None) -> ContentStore:
    kind = (kind or settings.CONTENT_STORE).lower()
    if kind == "local":
        return LocalContentStore(settings.CONTENT_STORE_PATH)
    if kind == "ipfs":
        return IPFSContentStore(settings.IPFS_API_URL, settings.IPFS_TIMEOUT)
    if kind == "memory":
        return MemoryContentStore()
    raise ValueError(f"Unknown CONTENT_STORE {kind!r}")


def get_content_store() -> ContentStore:
    """
    FastAPI dependency returning the process-wide store.
    """
    global _store
    with _store_lock:
        if _store is None:
            _store = build_content_store()
        return _store
