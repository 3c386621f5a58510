import json
import logging
from contextlib import contextmanager
from typing import Any, Optional

from sqlalchemy import Dialect, MetaData, create_engine, types
from sqlalchemy.orm import declarative_base, sessionmaker

from psd_worker.config import DATABASE_URL

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class JSONField(types.TypeDecorator):
    """Custom JSON Field for SQLAlchemy."""

    impl = types.Text
    cache_ok = True

    def process_bind_param(self, value: Optional[Any], dialect: Dialect) -> Optional[str]:
        return json.dumps(value)

    def process_result_value(self, value: Optional[str], dialect: Dialect) -> Optional[Any]:
        if value is not None:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return []


connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
)
metadata = MetaData(schema=None)
Base = declarative_base(metadata=metadata)


def init_db():
    """Create any missing tables."""
    # Import models so they register on Base.metadata
    from psd_worker.models import render_jobs  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready.")


def get_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


get_db = contextmanager(get_session)
