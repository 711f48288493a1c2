from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from database import build_engine, get_session, init_db
from main import app
from models import Note


@pytest.fixture
def engine():
     engine = build_engine("sqlite://", poolclass=StaticPool)
     init_db(engine)
     yield engine
     engine.dispose()


@pytest.fixture
def session_factory(engine):
     return sessionmaker(
          bind=engine,
          autocommit=False,
          autoflush=False,
          expire_on_commit=False,
     )


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
     session = session_factory()
     try:
          yield session
     finally:
          session.rollback()
          session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
     def override_get_session():
          session = session_factory()
          try:
               yield session
               session.commit()
          except Exception:
               session.rollback()
               raise
          finally:
               session.close()

     app.dependency_overrides[get_session] = override_get_session
     try:
          yield TestClient(app)
     finally:
          app.dependency_overrides.clear()


@pytest.fixture
def note(db) -> Note:
     """A stored note with no ledger history."""
     note = Note(title="hello", content="hello", priority="Medium", is_active=True)
     db.add(note)
     db.commit()
     return note
