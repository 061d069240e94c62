"""
Session helpers.

`get_db` is the FastAPI dependency for request-scoped sessions.
`session_scope` is used by code that runs off the request path
(content providers in worker threads, scripts) and needs its own session.
"""

from contextlib import contextmanager
from typing import Callable, Generator, Iterator
from sqlalchemy.orm import Session
from app.db.session import SessionLocal

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(factory: Callable[[], Session] = SessionLocal, commit: bool = False) -> Iterator[Session]:
    db = factory()
    try:
        yield db
        if commit:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
