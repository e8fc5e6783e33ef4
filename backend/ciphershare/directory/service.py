from typing import Optional, Protocol

from sqlmodel import Session, select

from ..core.errors import NotFoundError
from ..models.Department import Department
from ..models.User import User


class Directory(Protocol):
    """
    Read-only view of the user/department directory.
    """

    def get_user(self, user_id: int) -> User: ...

    def get_department(self, department_id: int) -> Department: ...

    def members_of(self, department_id: int) -> list[int]: ...

    def department_of(self, user_id: int) -> Optional[int]: ...


class SqlDirectory:
    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found.")
        return user

    def get_department(self, department_id: int) -> Department:
        department = self.session.get(Department, department_id)
        if not department:
            raise NotFoundError("Department not found.")
        return department

    def members_of(self, department_id: int) -> list[int]:
        statement = select(User.id).where(User.department_id == department_id).order_by(User.id)
        return list(self.session.exec(statement).all())

    def department_of(self, user_id: int) -> Optional[int]:
        return self.get_user(user_id).department_id
