import os

from sqlalchemy.engine import make_url
from sqlmodel import SQLModel, create_engine, Session
from .settings import settings

url = make_url(settings.DATABASE_URL)

connect_args = {}
if url.drivername.startswith("sqlite"):
    # check_same_thread=False is needed only for SQLite
    connect_args = {"check_same_thread": False}
    if url.database and url.database != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

def create_db_and_tables(bind=None):
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
