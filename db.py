# db.py
from sqlmodel import SQLModel, create_engine, Session
from sqlmodel.pool import StaticPool

from config import DATABASE_URL, DB_POOL_SIZE, DB_POOL_TIMEOUT, DB_IDLE_TIMEOUT

def _engine_options(url: str) -> dict:
  if url.startswith("sqlite"):
    # in-memory databases must share one connection
    return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
  return {
    "pool_size": DB_POOL_SIZE,
    "max_overflow": 0,
    "pool_timeout": DB_POOL_TIMEOUT,
    "pool_recycle": DB_IDLE_TIMEOUT,
    "pool_pre_ping": True,
  }

engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

def init_db() -> None:
  import models  # noqa: F401  registers the tables
  SQLModel.metadata.create_all(engine)

def get_session():
  with Session(engine) as session:
    yield session
