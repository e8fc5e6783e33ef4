import logging
import os
from typing import Optional, Tuple

from sqlmodel import Session

from ..audit.service import log_event
from ..core import crypto
from ..core.errors import (
    AccessDeniedError,
    ContentNotFoundError,
    DecryptionError,
    KeyFormatError,
    NotFoundError,
    PayloadTooLargeError,
)
from ..core.keys import deserialize_key, generate_key, serialize_key
from ..core.locks import audit_chain_lock, owner_lock
from ..core.settings import settings
from ..models.File import FileEditInfo, FileRead
from ..models.Sharing import EDITOR, OWNER
from ..sharing.service import SharingService
from ..storage.store import ContentStore
from .repository import FileRepository

logger = logging.getLogger(__name__)

DEFAULT_MIME = "application/octet-stream"


def split_extension(file_name: str) -> Tuple[str, str]:
    """
    "report.final.pdf" -> ("report.final", "pdf"); "README" -> ("README", "")
    """
    stem, ext = os.path.splitext(file_name)
    return stem, ext.lstrip(".")


def with_extension(base_name: str, extension: str) -> str:
    return f"{base_name}.{extension}" if extension else base_name


class FileService:
    def __init__(self, session: Session, store: ContentStore):
        self.session = session
        self.store = store
        self.files = FileRepository(session)
        self.sharing = SharingService(session)

    def upload(
        self,
        caller_id: int,
        data: bytes,
        filename: str,
        mime: Optional[str],
        description: str = "",
        declared_size: Optional[int] = None,
    ) -> FileRead:
        """
        Encrypts the payload under a new key, stores the ciphertext and
        records the metadata together with the wrapped key.
        """
        if len(data) > settings.MAX_UPLOAD_SIZE:
            raise PayloadTooLargeError()

        key = generate_key()
        ciphertext = crypto.encrypt(data, key, chunk_size=settings.ENCRYPTION_CHUNK_SIZE)
        content_id = self.store.put(ciphertext)

        with audit_chain_lock():
            record = self.files.create(
                name=filename,
                description=description or "",
                size=declared_size if declared_size is not None else len(data),
                mime=mime or DEFAULT_MIME,
                content_id=content_id,
                wrapped_key=serialize_key(key),
                owner_id=caller_id,
            )
            log_event(self.session, caller_id, "FILE_UPLOAD", f"file={record.id} cid={content_id}", commit=False)
            self.session.commit()

        logger.info("User %s uploaded file %s (%s bytes)", caller_id, record.id, len(data))
        return record

    def download(self, caller_id: int, file_id: int) -> Tuple[FileRead, bytes]:
        """
        Owner or grantee only; everyone else gets NotFound.
        """
        self.sharing.get_access(caller_id, file_id)
        record = self.files.find_by_id(file_id)

        try:
            ciphertext = self.store.get(record.ipfs_cid)
        except ContentNotFoundError:
            logger.error("Content %s for file %s is missing from the store", record.ipfs_cid, file_id)
            raise

        try:
            key = deserialize_key(record.aes_key)
            plaintext = crypto.decrypt(ciphertext, key)
        except (KeyFormatError, DecryptionError) as e:
            logger.error("Cannot decrypt file %s: %s", file_id, e.message)
            raise

        log_event(self.session, caller_id, "FILE_DOWNLOAD", f"file={file_id}")
        return record, plaintext

    def edit_info(self, caller_id: int, file_id: int) -> FileEditInfo:
        self.sharing.get_access(caller_id, file_id)
        record = self.files.find_by_id(file_id)
        stem, _ = split_extension(record.file_name)
        return FileEditInfo(file_name=stem, file_description=record.file_description)

    def edit_my_file(self, caller_id: int, file_id: int, base_name: str, description: str) -> FileRead:
        record = self.files.find_owned(file_id, caller_id)
        return self._edit(caller_id, record, base_name, description, shared_side=False)

    def edit_shared_file(self, caller_id: int, file_id: int, base_name: str, description: str) -> FileRead:
        access = self.sharing.get_access(caller_id, file_id)
        if access == OWNER:
            # Owners edit through their own files view
            raise NotFoundError("File not found.")
        if access != EDITOR:
            raise AccessDeniedError("Viewer access does not allow editing this file.")
        record = self.files.find_by_id(file_id)
        return self._edit(caller_id, record, base_name, description, shared_side=True)

    def _edit(self, caller_id: int, record: FileRead, base_name: str, description: str, shared_side: bool) -> FileRead:
        # The extension is kept; only the base name is editable
        _, extension = split_extension(record.file_name)
        new_name = with_extension(base_name, extension)

        with owner_lock(record.uploaded_by_user_id), audit_chain_lock():
            updated = self.files.update_metadata(record.id, new_name, description, shared_side=shared_side)
            log_event(self.session, caller_id, "FILE_EDIT", f"file={record.id} name={new_name}", commit=False)
            self.session.commit()
        return updated
