from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DATABASE_URL = "sqlite:///homecare.db"


def database_url_from_env(database_url: str | None = None) -> str:
    return (database_url or os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()


@contextmanager
def script_session(db_url: str) -> Generator[Session, None, None]:
    """
    Standalone session for release/admin scripts. Does not import app.wsgi, so it
    can run before the web app is importable (e.g. during the release phase).
    """
    engine = create_engine(db_url, pool_pre_ping=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
