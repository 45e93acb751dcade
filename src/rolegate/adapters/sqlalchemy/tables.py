"""SQLAlchemy table metadata for eligibility and claim persistence."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Dialect, MetaData, String, Table, TypeDecorator

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


eligible_address_table = Table(
    "eligible_address",
    metadata,
    Column("address", String(100), primary_key=True),
)

claim_table = Table(
    "claim",
    metadata,
    Column("address", String(100), primary_key=True),
    Column("claimant_id", String(255), nullable=False),
    Column("claimant_label", String(255), nullable=False),
    Column("claimed_at", UTCDateTime(), nullable=False),
    Column("transfer_id", String(100), nullable=True),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
