"""Database persistence layer."""

from .db import get_engine, get_session, init_db, session_scope_for
from .models import AI_FIELDS, Base, Tender
from .repo import TenderRepository

__all__ = [
    "get_engine",
    "get_session",
    "init_db",
    "session_scope_for",
    "AI_FIELDS",
    "Base",
    "Tender",
    "TenderRepository",
]
