# db.py
import os
from dotenv import load_dotenv
from sqlmodel import SQLModel, create_engine, Session

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
  raise RuntimeError("DATABASE_URL is not set in backend .env")

SQL_ECHO = os.getenv("SQL_ECHO", "").strip().lower() in ("1", "true", "yes")

# sessions are handed to FastAPI's threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=SQL_ECHO, pool_pre_ping=True, connect_args=connect_args)

def init_db() -> None:
  import models  # noqa: F401  registers the tables on SQLModel.metadata
  SQLModel.metadata.create_all(engine)

def get_session():
  """One session per request. Callers commit; anything left open is rolled back on close."""
  with Session(engine) as session:
    yield session
