"""Order workflow tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates: orders, status_history, audit_logs, order_qr_snapshots
Enums: orderstatus, paymentstatus
Sequences: order_number_seq
Triggers: status_history and audit_logs reject UPDATE and DELETE
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

    # ── 1. Enum types ─────────────────────────────────────────────────────
    op.execute("""
        CREATE TYPE orderstatus AS ENUM (
            'Pending', 'InProgress', 'Executed', 'Completed',
            'Cancelled', 'Delivered', 'PendingPayment', 'Paid'
        );
    """)
    op.execute("""
        CREATE TYPE paymentstatus AS ENUM ('None', 'PendingPayment', 'Paid');
    """)

    # ── 2. Order number sequence ──────────────────────────────────────────
    op.execute("CREATE SEQUENCE order_number_seq START WITH 1;")

    # ── 3. orders ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_number VARCHAR(50) NOT NULL UNIQUE,
            status orderstatus NOT NULL DEFAULT 'Pending',
            payment_status paymentstatus NOT NULL DEFAULT 'None',
            total_amount NUMERIC(14, 2) NOT NULL DEFAULT 0,
            estimated_delivery_at TIMESTAMPTZ,
            delivery_confirmed_at TIMESTAMPTZ,
            meta JSONB NOT NULL DEFAULT '{}',
            version INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_orders_status ON orders (status);")
    op.execute("CREATE INDEX ix_orders_estimated_delivery_at ON orders (estimated_delivery_at);")

    # ── 4. status_history (append-only) ───────────────────────────────────
    op.execute("""
        CREATE TABLE status_history (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE RESTRICT,
            from_status orderstatus,
            to_status orderstatus NOT NULL,
            changed_by UUID,
            reason TEXT,
            metadata JSONB NOT NULL DEFAULT '{}',
            seq BIGINT GENERATED BY DEFAULT AS IDENTITY NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
        );
    """)
    op.execute(
        "CREATE INDEX ix_status_history_order_id ON status_history (order_id, seq);"
    )
    op.execute("CREATE INDEX ix_status_history_changed_by ON status_history (changed_by);")

    # ── 5. audit_logs (append-only) ───────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            action VARCHAR(50) NOT NULL,
            entity_type VARCHAR(100) NOT NULL,
            entity_id UUID NOT NULL,
            actor_id UUID,
            diff JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
        );
    """)
    op.execute("CREATE INDEX ix_audit_logs_entity ON audit_logs (entity_type, entity_id);")
    op.execute("CREATE INDEX ix_audit_logs_actor_id ON audit_logs (actor_id);")
    op.execute("CREATE INDEX ix_audit_logs_created_at ON audit_logs (created_at);")

    # ── 6. order_qr_snapshots ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE order_qr_snapshots (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL UNIQUE REFERENCES orders(id) ON DELETE CASCADE,
            data_json JSONB NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    # ── 7. Ledger immutability ────────────────────────────────────────────
    op.execute("""
        CREATE OR REPLACE FUNCTION reject_ledger_mutation() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION '% is append-only', TG_TABLE_NAME;
        END;
        $$ LANGUAGE plpgsql;
    """)
    for table in ("status_history", "audit_logs"):
        op.execute(f"""
            CREATE TRIGGER {table}_append_only
            BEFORE UPDATE OR DELETE ON {table}
            FOR EACH ROW EXECUTE FUNCTION reject_ledger_mutation();
        """)


def downgrade() -> None:
    for table in ("status_history", "audit_logs"):
        op.execute(f"DROP TRIGGER IF EXISTS {table}_append_only ON {table};")
    op.execute("DROP FUNCTION IF EXISTS reject_ledger_mutation();")

    op.execute("DROP TABLE IF EXISTS order_qr_snapshots;")
    op.execute("DROP TABLE IF EXISTS audit_logs;")
    op.execute("DROP TABLE IF EXISTS status_history;")
    op.execute("DROP TABLE IF EXISTS orders;")

    op.execute("DROP SEQUENCE IF EXISTS order_number_seq;")
    op.execute("DROP TYPE IF EXISTS paymentstatus;")
    op.execute("DROP TYPE IF EXISTS orderstatus;")
