# database.py
from databases import Database
from sqlalchemy import create_engine, MetaData

from .config import DATABASE_URL

# async database client
database = Database(DATABASE_URL)

# SQLAlchemy sync engine for metadata.create_all()
SYNC_DATABASE_URL = DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
if SYNC_DATABASE_URL.startswith("sqlite"):
    engine = create_engine(SYNC_DATABASE_URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(SYNC_DATABASE_URL)

# Single shared metadata
metadata = MetaData()


def init_db():
    # models registers every table on the shared metadata
    from . import models  # noqa: F401
    metadata.create_all(engine)


def reset_db():
    from . import models  # noqa: F401
    metadata.drop_all(engine)
    metadata.create_all(engine)


def row_to_dict(row):
    """databases Record -> plain dict (None passes through)."""
    if row is None:
        return None
    return dict(row._mapping)
