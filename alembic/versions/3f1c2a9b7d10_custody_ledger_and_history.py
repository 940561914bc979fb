"""custody ledger and transfer history

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "3f1c2a9b7d10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Enums ---
    custodystatus = sa.Enum("available", "checked_out", name="custodystatus")
    holdertype = sa.Enum("user", "agent", "client", name="holdertype")
    transfertype = sa.Enum(
        "user_to_user",
        "user_to_agent",
        "user_to_client",
        "rolled_back",
        name="transfertype",
    )
    for enum_type in (custodystatus, holdertype, transfertype):
        enum_type.create(op.get_bind(), checkfirst=True)

    # --- Directory ---
    op.create_table(
        "people",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "roles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "person_roles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("person_id", sa.Uuid(), nullable=False),
        sa.Column("role_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "person_id", "role_id", name="uq_person_roles_person_role"
        ),
    )
    for table in ("clearance_agents", "clients"):
        op.create_table(
            table,
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("file_name", sa.String(length=500), nullable=True),
        sa.Column("car_id", sa.Uuid(), nullable=True),
        sa.Column("uploaded_by", sa.Uuid(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["uploaded_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_uploaded_by", "documents", ["uploaded_by"])
    op.create_index("ix_documents_car_id", "documents", ["car_id"])

    # --- Transfer history ---
    op.create_table(
        "transfer_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column("from_user_id", sa.Uuid(), nullable=True),
        sa.Column("from_agent_id", sa.Uuid(), nullable=True),
        sa.Column("from_client_name", sa.String(length=255), nullable=True),
        sa.Column("to_user_id", sa.Uuid(), nullable=True),
        sa.Column("to_agent_id", sa.Uuid(), nullable=True),
        sa.Column("to_client_id", sa.Uuid(), nullable=True),
        sa.Column("to_client_name", sa.String(length=255), nullable=True),
        sa.Column(
            "transfer_type",
            sa.Enum(
                "user_to_user",
                "user_to_agent",
                "user_to_client",
                "rolled_back",
                name="transfertype",
                create_type=False,
            ),
            nullable=False,
        ),
        sa.Column("performed_by", sa.Uuid(), nullable=False),
        sa.Column("transferred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_return_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("return_notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["from_user_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["from_agent_id"], ["clearance_agents.id"]),
        sa.ForeignKeyConstraint(["to_user_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["to_agent_id"], ["clearance_agents.id"]),
        sa.ForeignKeyConstraint(["to_client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["performed_by"], ["people.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_transfer_history_document_id", "transfer_history", ["document_id"]
    )
    op.create_index(
        "ix_transfer_history_document_transferred_at",
        "transfer_history",
        ["document_id", "transferred_at"],
    )
    op.create_index(
        "ix_transfer_history_to_user_id", "transfer_history", ["to_user_id"]
    )

    # --- Custody ledger (one row per document) ---
    holder_enum = sa.Enum(
        "user", "agent", "client", name="holdertype", create_type=False
    )
    op.create_table(
        "custody_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "available", "checked_out", name="custodystatus", create_type=False
            ),
            nullable=False,
        ),
        sa.Column("holder_type", holder_enum, nullable=True),
        sa.Column("holder_user_id", sa.Uuid(), nullable=True),
        sa.Column("holder_agent_id", sa.Uuid(), nullable=True),
        sa.Column("holder_client_id", sa.Uuid(), nullable=True),
        sa.Column("previous_holder_type", holder_enum, nullable=True),
        sa.Column("previous_holder_id", sa.Uuid(), nullable=True),
        sa.Column("current_entry_id", sa.Uuid(), nullable=True),
        sa.Column("checked_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("transferred_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_return_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["holder_user_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["holder_agent_id"], ["clearance_agents.id"]),
        sa.ForeignKeyConstraint(["holder_client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(
            ["current_entry_id"], ["transfer_history.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_id"),
        sa.CheckConstraint(
            "(CASE WHEN holder_user_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN holder_agent_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN holder_client_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="ck_custody_records_single_holder",
        ),
        sa.CheckConstraint(
            "status = 'checked_out' OR (holder_type IS NULL"
            " AND holder_user_id IS NULL AND holder_agent_id IS NULL"
            " AND holder_client_id IS NULL)",
            name="ck_custody_records_available_no_holder",
        ),
        sa.CheckConstraint(
            "status = 'available' OR holder_type IS NOT NULL",
            name="ck_custody_records_checked_out_has_holder",
        ),
    )
    op.create_index(
        "ix_custody_records_holder_user_id", "custody_records", ["holder_user_id"]
    )
    op.create_index("ix_custody_records_status", "custody_records", ["status"])


def downgrade() -> None:
    op.drop_index("ix_custody_records_status", table_name="custody_records")
    op.drop_index("ix_custody_records_holder_user_id", table_name="custody_records")
    op.drop_table("custody_records")

    op.drop_index("ix_transfer_history_to_user_id", table_name="transfer_history")
    op.drop_index(
        "ix_transfer_history_document_transferred_at", table_name="transfer_history"
    )
    op.drop_index("ix_transfer_history_document_id", table_name="transfer_history")
    op.drop_table("transfer_history")

    op.drop_index("ix_documents_car_id", table_name="documents")
    op.drop_index("ix_documents_uploaded_by", table_name="documents")
    op.drop_table("documents")
    op.drop_table("clients")
    op.drop_table("clearance_agents")
    op.drop_table("person_roles")
    op.drop_table("roles")
    op.drop_table("people")

    for enum_name in ["transfertype", "holdertype", "custodystatus"]:
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
