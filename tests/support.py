import unittest

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

from ciphershare.core.init_db import init_db
# Model imports register the tables
from ciphershare.models.Audit import AuditLog
from ciphershare.models.Department import Department
from ciphershare.models.File import StoredFile
from ciphershare.models.Sharing import Permission, SharedFile, ShareRequest
from ciphershare.models.User import User
from ciphershare.storage.store import MemoryContentStore

VIEWER_ID = 1
EDITOR_ID = 2


def make_engine(url: str = "sqlite://"):
    if url == "sqlite://":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    init_db(engine)
    return engine


class DirectoryTestCase(unittest.TestCase):
    """
    Fresh in-memory database with a small directory:
      Engineering: bob, carol, dave
      HR: erin
      alice (no department) owns the files in most tests
    """

    def setUp(self):
        self.engine = make_engine()
        self.session = Session(self.engine)
        self.addCleanup(self.session.close)
        self.store = MemoryContentStore()

        self.engineering = self.add_department("Engineering")
        self.hr = self.add_department("HR")
        self.alice = self.add_user("Alice", "alice@example.com", None)
        self.bob = self.add_user("Bob", "bob@example.com", self.engineering)
        self.carol = self.add_user("Carol", "carol@example.com", self.engineering)
        self.dave = self.add_user("Dave", "dave@example.com", self.engineering)
        self.erin = self.add_user("Erin", "erin@example.com", self.hr)

    def add_department(self, name: str) -> int:
        dept = Department(dep_name=name)
        self.session.add(dept)
        self.session.commit()
        return dept.id

    def add_user(self, name: str, email: str, department_id) -> int:
        user = User(name=name, email=email, department_id=department_id)
        self.session.add(user)
        self.session.commit()
        return user.id

    def count(self, model, **filters) -> int:
        with Session(self.engine) as session:
            rows = session.exec(select(model).filter_by(**filters)).all()
            return len(rows)
