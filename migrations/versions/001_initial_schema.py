"""Initial schema: clients, vehicles and contracts.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── clients ───────────────────────────────────────────────────────
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("date_of_birth", sa.Date, nullable=False),
        sa.Column("license_number", sa.String(50), unique=True, nullable=False),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_clients_identity",
        "clients",
        ["first_name", "last_name", "date_of_birth"],
    )
    op.create_index("idx_clients_last_name", "clients", ["last_name"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("registration_plate", sa.String(20), unique=True, nullable=False),
        sa.Column("brand", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("motorization", sa.String(50), nullable=True),
        sa.Column("color", sa.String(50), nullable=True),
        sa.Column("acquisition_date", sa.Date, nullable=False),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "RENTED", "BROKEN_DOWN", name="vehiclestatus"),
            default="AVAILABLE",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])
    op.create_index("idx_vehicles_brand", "vehicles", ["brand"])

    # ── contracts ─────────────────────────────────────────────────────
    op.create_table(
        "contracts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "client_id", sa.Integer, sa.ForeignKey("clients.id"), nullable=False
        ),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=False
        ),
        sa.Column("start_date", sa.DateTime, nullable=False),
        sa.Column("end_date", sa.DateTime, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "ONGOING",
                "COMPLETED",
                "OVERDUE",
                "CANCELLED",
                name="contractstatus",
            ),
            default="PENDING",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("end_date > start_date", name="ck_contracts_interval"),
    )
    op.create_index(
        "idx_contracts_vehicle_status", "contracts", ["vehicle_id", "status"]
    )
    op.create_index(
        "idx_contracts_vehicle_interval",
        "contracts",
        ["vehicle_id", "start_date", "end_date"],
    )
    op.create_index("idx_contracts_status_end", "contracts", ["status", "end_date"])
    op.create_index("idx_contracts_client", "contracts", ["client_id"])


def downgrade() -> None:
    op.drop_table("contracts")
    op.drop_table("vehicles")
    op.drop_table("clients")
    op.execute("DROP TYPE IF EXISTS contractstatus")
    op.execute("DROP TYPE IF EXISTS vehiclestatus")
