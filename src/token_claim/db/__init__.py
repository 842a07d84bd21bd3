"""
Token Claim Service - Database Package

Provides async session management and the event registry / claim ledger
repositories.
"""

from token_claim.db.session import (
    acquire_serialization_lock,
    async_session_factory,
    build_engine,
    build_session_factory,
    close_db,
    engine,
    ensure_schema,
    init_db,
)

__all__ = [
    "acquire_serialization_lock",
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "ensure_schema",
    "init_db",
    "close_db",
]
