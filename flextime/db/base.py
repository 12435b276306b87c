from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


# SQLAlchemy Base class for models to inherit
class Base(DeclarativeBase):
    pass


def make_engine(database_url: str) -> Engine:
    """Create an engine; nothing connects until the first query."""
    is_sqlite = database_url.startswith("sqlite")
    return create_engine(
        database_url,
        pool_pre_ping=True,   # helps avoid stale connections
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
