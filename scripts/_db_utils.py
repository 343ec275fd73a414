from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.ceklis.db import enable_sqlite_foreign_keys, engine_options, make_sessionmaker


def create_script_engine(db_url: str):
    engine = create_engine(db_url, **engine_options(db_url))
    enable_sqlite_foreign_keys(engine)
    return engine


@contextmanager
def script_session(db_url: str):
    """Commit-on-success session for one-off scripts; never builds the Flask app."""
    engine = create_script_engine(db_url)
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
