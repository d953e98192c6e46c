from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "stores",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.bulk_insert(
        sa.table("stores", sa.column("id", sa.String), sa.column("name", sa.String)),
        [
            {"id": "capao", "name": "Top Capão Bonito"},
            {"id": "guapiara", "name": "Top Guapiara"},
            {"id": "ribeirao", "name": "Top Ribeirão Branco"},
            {"id": "admin", "name": "Caixa Administrativo"},
        ],
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("email", sa.String(255), nullable=False, index=True),
        sa.Column("store_id", sa.String(50), nullable=True, index=True),
        sa.Column("operator_name", sa.String(255), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "closings",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("closing_date", sa.Date(), nullable=False, index=True),
        sa.Column("store_id", sa.String(50), nullable=False, index=True),
        sa.Column("user_id", sa.Integer(), nullable=True, index=True),
        sa.Column("operator_name", sa.String(255), nullable=True),
        sa.Column("common_entries", sa.JSON(), nullable=False),
        sa.Column("electronic_entries", sa.JSON(), nullable=False),
        sa.Column("calculated_totals", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("store_id", "closing_date", name="uq_closing_store_date"),
    )

    op.create_table(
        "closing_operational_exits",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("closing_id", sa.Integer(), nullable=False, index=True),
        sa.Column("scope", sa.String(20), nullable=False, server_default="store"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.ForeignKeyConstraint(["closing_id"], ["closings.id"], ondelete="CASCADE"),
        sa.CheckConstraint("amount > 0", name="ck_exit_amount_positive"),
    )

    op.create_table(
        "receivables",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("store_id", sa.String(50), nullable=False, index=True),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("reference", sa.String(100), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("debit_date", sa.Date(), nullable=False, index=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending", index=True),
        sa.Column("origin_closing_id", sa.Integer(), nullable=False, index=True),
        sa.Column("payment_closing_id", sa.Integer(), nullable=True, index=True),
        sa.Column("effective_payment_date", sa.Date(), nullable=True),
        sa.Column("writeoff_date", sa.DateTime(), nullable=True),
        sa.Column("written_off_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["origin_closing_id"], ["closings.id"]),
        sa.ForeignKeyConstraint(["payment_closing_id"], ["closings.id"]),
        sa.ForeignKeyConstraint(["written_off_by"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint("amount > 0", name="ck_receivable_amount_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'paid_pending_writeoff', 'written_off')",
            name="ck_receivable_status",
        ),
    )

    op.create_table(
        "received_payments",
        sa.Column("id", sa.Integer(), primary_key=True, index=True),
        sa.Column("closing_id", sa.Integer(), nullable=False, index=True),
        sa.Column("receivable_id", sa.Integer(), nullable=False, index=True),
        sa.Column("amount_received", sa.Numeric(10, 2), nullable=False),
        sa.ForeignKeyConstraint(["closing_id"], ["closings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["receivable_id"], ["receivables.id"]),
        sa.UniqueConstraint("receivable_id", name="uq_received_payment_receivable"),
    )


def downgrade() -> None:
    op.drop_table("received_payments")
    op.drop_table("receivables")
    op.drop_table("closing_operational_exits")
    op.drop_table("closings")
    op.drop_table("users")
    op.drop_table("stores")
