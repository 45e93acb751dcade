"""Database-backed stores.

Each ``save`` replaces the stored set inside one transaction, so a failed
write leaves the previous contents untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, delete, insert, select

from rolegate.domain.model import ClaimInfo

from .tables import claim_table, create_all_tables, eligible_address_table

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy.engine import Engine


def startup(database_uri: str) -> Engine:
    """Create the engine and ensure the schema exists."""

    engine = create_engine(database_uri, future=True)
    create_all_tables(engine)
    return engine


class SqlAlchemyAddressListStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def load(self) -> set[str]:
        with self.engine.connect() as connection:
            rows = connection.execute(select(eligible_address_table.c.address))
            return {row.address for row in rows}

    def save(self, addresses: set[str]) -> None:
        with self.engine.begin() as connection:
            connection.execute(delete(eligible_address_table))
            if addresses:
                connection.execute(
                    insert(eligible_address_table),
                    [{"address": address} for address in sorted(addresses)],
                )


class SqlAlchemyClaimStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def load(self) -> dict[str, ClaimInfo]:
        with self.engine.connect() as connection:
            rows = connection.execute(select(claim_table))
            return {
                row.address: ClaimInfo(
                    claimant_id=row.claimant_id,
                    claimant_label=row.claimant_label,
                    claimed_at=row.claimed_at,
                    transfer_id=row.transfer_id,
                )
                for row in rows
            }

    def save(self, claims: Mapping[str, ClaimInfo]) -> None:
        with self.engine.begin() as connection:
            connection.execute(delete(claim_table))
            if claims:
                connection.execute(
                    insert(claim_table),
                    [
                        {
                            "address": address,
                            "claimant_id": claim.claimant_id,
                            "claimant_label": claim.claimant_label,
                            "claimed_at": claim.claimed_at,
                            "transfer_id": claim.transfer_id,
                        }
                        for address, claim in sorted(claims.items())
                    ],
                )
