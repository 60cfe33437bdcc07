import uuid
from datetime import datetime, timezone
from typing import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine

from services.vault.src.vault.db.models import (
    listed_assets,
    user_positions,
    vault_operations,
)
from services.vault.src.vault.domain.ledger import ScaledBalanceLedger
from services.vault.src.vault.domain.models import (
    ListedAsset,
    OperationKind,
    OperationResult,
    UserPosition,
)
from services.vault.src.vault.domain.registry import AssetRegistry


class RegistryRepository:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._is_sqlite = "sqlite" in str(engine.url)

    def save(self, registry: AssetRegistry) -> int:
        rows = [
            {
                "address": a.address,
                "position": a.position,
                "deposits_enabled": a.deposits_enabled,
                "borrows_enabled": a.borrows_enabled,
            }
            for a in registry.entries()
        ]
        if not rows:
            return 0

        with self.engine.begin() as conn:
            insert = sqlite_insert if self._is_sqlite else pg_insert
            stmt = insert(listed_assets).values(rows)
            # Position is append-only; only the flags can change
            stmt = stmt.on_conflict_do_update(
                index_elements=["address"],
                set_={
                    "deposits_enabled": stmt.excluded.deposits_enabled,
                    "borrows_enabled": stmt.excluded.borrows_enabled,
                },
            )
            result = conn.execute(stmt)
            return result.rowcount

    def load(self) -> AssetRegistry:
        stmt = select(listed_assets).order_by(listed_assets.c.position)
        with self.engine.connect() as conn:
            entries = [
                ListedAsset(
                    address=row.address,
                    position=row.position,
                    deposits_enabled=row.deposits_enabled,
                    borrows_enabled=row.borrows_enabled,
                )
                for row in conn.execute(stmt)
            ]
        return AssetRegistry.from_entries(entries)


class PositionRepository:
    def __init__(self, engine: Engine):
        self.engine = engine
        self._is_sqlite = "sqlite" in str(engine.url)

    def save(self, ledger: ScaledBalanceLedger) -> int:
        return self.save_positions(ledger.positions())

    def save_positions(self, positions: Iterable[UserPosition]) -> int:
        now = datetime.now(timezone.utc)
        rows = [
            {
                "id": str(uuid.uuid4()),
                "user_address": p.user_address,
                "asset_address": p.asset_address,
                "scaled_supply": str(p.scaled_supply),
                "scaled_debt": str(p.scaled_debt),
                "updated_at": now,
            }
            for p in positions
        ]
        if not rows:
            return 0

        with self.engine.begin() as conn:
            if self._is_sqlite:
                return self._upsert_sqlite(conn, rows)
            else:
                return self._upsert_postgres(conn, rows)

    def _upsert_postgres(self, conn: Connection, rows: list[dict]) -> int:
        stmt = pg_insert(user_positions).values(rows)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_user_position_key",
            set_={
                "scaled_supply": stmt.excluded.scaled_supply,
                "scaled_debt": stmt.excluded.scaled_debt,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        result = conn.execute(stmt)
        return result.rowcount

    def _upsert_sqlite(self, conn: Connection, rows: list[dict]) -> int:
        stmt = sqlite_insert(user_positions).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_address", "asset_address"],
            set_={
                "scaled_supply": stmt.excluded.scaled_supply,
                "scaled_debt": stmt.excluded.scaled_debt,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        result = conn.execute(stmt)
        return result.rowcount

    def load(self) -> ScaledBalanceLedger:
        with self.engine.connect() as conn:
            positions = [
                UserPosition(
                    user_address=row.user_address,
                    asset_address=row.asset_address,
                    scaled_supply=int(row.scaled_supply),
                    scaled_debt=int(row.scaled_debt),
                )
                for row in conn.execute(select(user_positions))
            ]
        return ScaledBalanceLedger.from_positions(positions)


class OperationsRepository:
    """Journal of committed vault operations."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def insert_operations(self, results: Sequence[OperationResult]) -> int:
        if not results:
            return 0

        rows = []
        for r in results:
            rows.append(
                {
                    "id": str(uuid.uuid4()),
                    "kind": r.kind.value,
                    "user_address": r.user_address,
                    "asset_address": r.asset_address,
                    "requested_amount": str(r.requested_amount),
                    "actual_amount": str(r.actual_amount),
                    "scaled_delta": str(r.scaled_delta),
                    "refund": str(r.refund),
                    "timestamp": r.timestamp or datetime.now(timezone.utc),
                }
            )

        with self.engine.begin() as conn:
            conn.execute(vault_operations.insert(), rows)
        return len(rows)

    def get_operations(self, user_address: str | None = None) -> list[OperationResult]:
        stmt = select(vault_operations).order_by(vault_operations.c.timestamp)
        if user_address:
            stmt = stmt.where(vault_operations.c.user_address == user_address.lower())

        with self.engine.connect() as conn:
            return [
                OperationResult(
                    kind=OperationKind(row.kind),
                    user_address=row.user_address,
                    asset_address=row.asset_address,
                    requested_amount=int(row.requested_amount),
                    actual_amount=int(row.actual_amount),
                    scaled_delta=int(row.scaled_delta),
                    refund=int(row.refund),
                    timestamp=row.timestamp,
                )
                for row in conn.execute(stmt)
            ]
