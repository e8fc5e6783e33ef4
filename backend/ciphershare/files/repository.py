from sqlmodel import Session, select

from ..core import errors
from ..core.errors import ConflictError, NoChangeError, NotFoundError
from ..models.File import FileRead, StoredFile, utcnow


class FileRepository:
    """
    File metadata records. Methods flush but never commit; the calling
    service owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def _get_row(self, file_id: int) -> StoredFile:
        row = self.session.get(StoredFile, file_id)
        if not row:
            raise NotFoundError("File not found.")
        return row

    def create(
        self,
        name: str,
        description: str,
        size: int,
        mime: str,
        content_id: str,
        wrapped_key: str,
        owner_id: int,
    ) -> FileRead:
        row = StoredFile(
            file_name=name,
            file_description=description,
            file_size=size,
            file_mime=mime,
            ipfs_cid=content_id,
            aes_key=wrapped_key,
            uploaded_by_user_id=owner_id,
        )
        self.session.add(row)
        self.session.flush()
        return FileRead.model_validate(row)

    def find_by_id(self, file_id: int) -> FileRead:
        return FileRead.model_validate(self._get_row(file_id))

    def find_owned(self, file_id: int, owner_id: int) -> FileRead:
        # Files owned by someone else are reported as missing
        row = self.session.get(StoredFile, file_id)
        if not row or row.uploaded_by_user_id != owner_id:
            raise NotFoundError("File not found.")
        return FileRead.model_validate(row)

    def list_by_owner(self, owner_id: int) -> list[FileRead]:
        statement = (
            select(StoredFile)
            .where(StoredFile.uploaded_by_user_id == owner_id)
            .order_by(StoredFile.updated_at.desc(), StoredFile.id.desc())
        )
        return [FileRead.model_validate(row) for row in self.session.exec(statement)]

    def name_taken(self, owner_id: int, name: str, exclude_id: int | None = None) -> bool:
        statement = select(StoredFile.id).where(
            StoredFile.uploaded_by_user_id == owner_id,
            StoredFile.file_name == name,
        )
        if exclude_id is not None:
            statement = statement.where(StoredFile.id != exclude_id)
        return self.session.exec(statement).first() is not None

    def update_metadata(self, file_id: int, name: str, description: str, shared_side: bool = False) -> FileRead:
        """
        Renames/re-describes a file. The name must be unique among the
        owner's files, also when the edit comes from a grantee.
        """
        row = self._get_row(file_id)

        if name == row.file_name and description == row.file_description:
            raise NoChangeError()

        if self.name_taken(row.uploaded_by_user_id, name, exclude_id=file_id):
            if shared_side:
                raise ConflictError(errors.FILENAME_EXISTS_AT_OWNER, code="filename_exists_at_owner")
            raise ConflictError(errors.FILENAME_EXISTS, code="filename_exists")

        row.file_name = name
        row.file_description = description
        row.updated_at = utcnow()
        self.session.add(row)
        self.session.flush()
        return FileRead.model_validate(row)

    def delete(self, file_id: int) -> None:
        self.session.delete(self._get_row(file_id))
        self.session.flush()
