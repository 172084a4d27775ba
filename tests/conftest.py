"""
Shared fixtures: a file-backed SQLite store per test and tender factories.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from tenderwatch.core.normalize.canonical import TenderCanonical, utcnow
from tenderwatch.persistence.db import create_db_engine, make_session_factory, session_scope_for
from tenderwatch.persistence.models import Base
from tenderwatch.persistence.repo import TenderRepository


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'tenders.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_scope(engine):
    return session_scope_for(make_session_factory(engine))


@pytest.fixture
def make_tender():
    """Build canonical tenders with sensible defaults."""

    def factory(external_id: str | None = "T-1", **overrides) -> TenderCanonical:
        fields = {
            "external_id": external_id,
            "source": "AusTender",
            "title": f"Tender {external_id}",
            "agency": "Department of Finance",
            "description": "Supply of office furniture to Canberra offices",
            "close_date": utcnow() + timedelta(days=14),
            "publish_date": datetime(2024, 1, 15),
        }
        fields.update(overrides)
        return TenderCanonical(**fields)

    return factory


@pytest.fixture
def store_tender(session_scope, make_tender):
    """Insert a tender and return its id."""

    def store(external_id: str | None = "T-1", **overrides) -> int:
        with session_scope() as session:
            tender, _ = TenderRepository(session).upsert(make_tender(external_id, **overrides).to_dict())
            return tender.id

    return store
