"""SQLAlchemy adapter package."""

from __future__ import annotations

from .stores import SqlAlchemyAddressListStore, SqlAlchemyClaimStore, startup
from .tables import claim_table, create_all_tables, eligible_address_table, metadata

__all__ = [
    "SqlAlchemyAddressListStore",
    "SqlAlchemyClaimStore",
    "claim_table",
    "create_all_tables",
    "eligible_address_table",
    "metadata",
    "startup",
]
