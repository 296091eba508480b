# localpress/db/session.py
from sqlmodel import create_engine, Session
from sqlalchemy.pool import StaticPool

from localpress.config import DATABASE_URL, SQL_ECHO

# If you use SQLite locally (e.g. sqlite:///./localpress.db) we need connect_args
connect_args = {}
engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    # in-memory databases must share one connection across threads
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args, **engine_kwargs)


def get_session():
    with Session(engine) as session:
        yield session
