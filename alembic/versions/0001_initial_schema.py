"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

DRAWING_STATUSES = ("DRAFT", "ACTIVE", "COMPLETED", "CANCELLED")
ENTRY_TYPES = ("MANUAL", "REFERRAL")
USER_ROLES = ("SUPER_ADMIN", "ADMIN", "CLIENT")


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_organizations")),
        sa.UniqueConstraint("name", name=op.f("uq_organizations_name")),
    )

    op.create_table(
        "users",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column(
            "role",
            sa.Enum(*USER_ROLES, name="user_role", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("org_id", ID_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["org_id"],
            ["organizations.id"],
            name=op.f("fk_users_org_id_organizations"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
    )
    op.create_index(op.f("ix_users_org_id"), "users", ["org_id"], unique=False)

    # winner_entry_id gets its foreign key once drawing_entries exists.
    op.create_table(
        "drawings",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("prize", sa.String(length=255), nullable=False),
        sa.Column("prize_details", sa.Text(), nullable=True),
        sa.Column("rules", sa.Text(), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("draw_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "draw_date_scheduled", sa.Boolean(), server_default=sa.false(), nullable=False
        ),
        sa.Column("min_entries", sa.Integer(), nullable=False),
        sa.Column("max_entries", sa.Integer(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*DRAWING_STATUSES, name="drawing_status", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("winner_entry_id", ID_TYPE, nullable=True),
        sa.Column("org_id", ID_TYPE, nullable=False),
        sa.Column("created_by_id", ID_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "min_entries >= 1", name=op.f("ck_drawings_min_entries_positive")
        ),
        sa.CheckConstraint(
            "max_entries IS NULL OR max_entries >= 1",
            name=op.f("ck_drawings_max_entries_positive"),
        ),
        sa.CheckConstraint(
            "end_date >= start_date", name=op.f("ck_drawings_end_after_start")
        ),
        sa.CheckConstraint(
            "draw_date IS NULL OR draw_date >= end_date",
            name=op.f("ck_drawings_draw_after_end"),
        ),
        sa.ForeignKeyConstraint(
            ["org_id"],
            ["organizations.id"],
            name=op.f("fk_drawings_org_id_organizations"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["created_by_id"],
            ["users.id"],
            name=op.f("fk_drawings_created_by_id_users"),
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_drawings")),
    )
    op.create_index(op.f("ix_drawings_org_id"), "drawings", ["org_id"], unique=False)
    op.create_index("ix_drawings_status", "drawings", ["status"], unique=False)

    op.create_table(
        "drawing_entries",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("drawing_id", ID_TYPE, nullable=False),
        sa.Column("user_id", ID_TYPE, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column(
            "entry_type",
            sa.Enum(*ENTRY_TYPES, name="entry_type", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "quantity >= 1", name=op.f("ck_drawing_entries_quantity_positive")
        ),
        sa.ForeignKeyConstraint(
            ["drawing_id"],
            ["drawings.id"],
            name=op.f("fk_drawing_entries_drawing_id_drawings"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_drawing_entries_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_drawing_entries")),
    )
    op.create_index(
        op.f("ix_drawing_entries_drawing_id"), "drawing_entries", ["drawing_id"], unique=False
    )
    op.create_index(
        op.f("ix_drawing_entries_user_id"), "drawing_entries", ["user_id"], unique=False
    )

    with op.batch_alter_table("drawings") as batch_op:
        batch_op.create_foreign_key(
            op.f("fk_drawings_winner_entry_id_drawing_entries"),
            "drawing_entries",
            ["winner_entry_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "notifications",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("user_id", ID_TYPE, nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("read", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name=op.f("fk_notifications_user_id_users"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notifications")),
    )
    op.create_index(
        op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_notifications_user_id"), table_name="notifications")
    op.drop_table("notifications")

    with op.batch_alter_table("drawings") as batch_op:
        batch_op.drop_constraint(
            op.f("fk_drawings_winner_entry_id_drawing_entries"), type_="foreignkey"
        )

    op.drop_index(op.f("ix_drawing_entries_user_id"), table_name="drawing_entries")
    op.drop_index(op.f("ix_drawing_entries_drawing_id"), table_name="drawing_entries")
    op.drop_table("drawing_entries")
    op.drop_index("ix_drawings_status", table_name="drawings")
    op.drop_index(op.f("ix_drawings_org_id"), table_name="drawings")
    op.drop_table("drawings")
    op.drop_index(op.f("ix_users_org_id"), table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")
