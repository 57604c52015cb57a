import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from config import get_settings
from models import Base

logger = logging.getLogger(__name__)

SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def build_engine(database_url, **kwargs):
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # file databases need their folder; ":memory:" has none
        if url.database and url.database != ":memory:":
            folder = os.path.dirname(url.database)
            if folder:
                os.makedirs(folder, exist_ok=True)
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, **kwargs)


def init_db(engine=None):
    """Bind the session factory and create missing tables."""
    if engine is None:
        engine = build_engine(get_settings().database_url)
    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))
    return engine


# ------------------------------------------------------------
# Dependency
# ------------------------------------------------------------

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
