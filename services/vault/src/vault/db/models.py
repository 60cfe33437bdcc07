from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
)

metadata = MetaData()

# uint256-sized values are stored as decimal strings: SQLite has no exact
# numeric type wide enough for them.
AMOUNT = String(80)

listed_assets = Table(
    "listed_assets",
    metadata,
    Column("address", String(66), primary_key=True),
    Column("position", Integer, nullable=False),
    Column("deposits_enabled", Boolean, nullable=False),
    Column("borrows_enabled", Boolean, nullable=False),
    UniqueConstraint("position", name="uq_listed_asset_position"),
)

user_positions = Table(
    "user_positions",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_address", String(66), nullable=False),
    Column("asset_address", String(66), nullable=False),
    Column("scaled_supply", AMOUNT, nullable=False),
    Column("scaled_debt", AMOUNT, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("user_address", "asset_address", name="uq_user_position_key"),
    Index("ix_user_positions_user", "user_address"),
)

vault_operations = Table(
    "vault_operations",
    metadata,
    Column("id", String, primary_key=True),
    Column("kind", String(20), nullable=False),
    Column("user_address", String(66), nullable=False),
    Column("asset_address", String(66), nullable=False),
    Column("requested_amount", AMOUNT, nullable=False),
    Column("actual_amount", AMOUNT, nullable=False),
    Column("scaled_delta", AMOUNT, nullable=False),
    Column("refund", AMOUNT, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Index("idx_operations_user", "user_address", "timestamp"),
    Index("idx_operations_asset", "asset_address", "timestamp"),
)
