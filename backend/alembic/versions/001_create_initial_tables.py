"""Create initial tables

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

What:  Creates every table the service uses: papers, users, the subject
       catalog, and the three saved-papers tables.
How:   Portable column types (sa.Uuid, TIMESTAMP WITH TIME ZONE) so the same
       revision runs on PostgreSQL and SQLite.

Rollback: downgrade() drops all tables (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Papers ────────────────────────────────────────────────────────────
    op.create_table(
        "papers",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column(
            "drive_file_id",
            sa.String(255),
            nullable=False,
            comment="Object-store id of the uploaded file",
        ),
        sa.Column(
            "drive_link",
            sa.String(1024),
            nullable=False,
            comment="Publicly readable link to the file",
        ),
        sa.Column("year_of_study", sa.String(32), nullable=True),
        sa.Column("branch", sa.String(64), nullable=True),
        sa.Column("semester", sa.String(32), nullable=True),
        sa.Column("subject", sa.String(255), nullable=True),
        sa.Column("paper_type", sa.String(64), nullable=True),
        sa.Column("contributor", sa.String(255), nullable=True),
        sa.Column(
            "uploaded_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("drive_file_id"),
    )
    op.create_index("idx_papers_subject", "papers", ["subject"])
    op.create_index("idx_papers_year_subject", "papers", ["year_of_study", "subject"])
    op.create_index("idx_papers_branch_semester", "papers", ["branch", "semester"])
    op.create_index("idx_papers_contributor", "papers", ["contributor"])

    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(512), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )

    # ── Subject catalog ───────────────────────────────────────────────────
    op.create_table(
        "subject_catalog",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("program", sa.String(64), nullable=False),
        sa.Column("branch", sa.String(64), nullable=False),
        sa.Column("semester", sa.String(32), nullable=False),
        sa.Column("subject_name", sa.String(255), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "program", "branch", "semester", "subject_name",
            name="uq_subject_catalog_entry",
        ),
    )
    op.create_index(
        "idx_subject_catalog_group", "subject_catalog", ["program", "branch", "semester"],
    )

    # ── Saved papers ──────────────────────────────────────────────────────
    # The unique constraints below are the conflict targets of the
    # ON CONFLICT writes in SavedPaperService; they must not be dropped.
    op.create_table(
        "saved_paper_records",
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_table(
        "saved_collections",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("collection_name", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["saved_paper_records.user_id"], ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "user_id", "collection_name", name="uq_saved_collections_user_name",
        ),
    )
    op.create_table(
        "saved_collection_papers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("paper_id", sa.String(255), nullable=False),
        sa.Column(
            "added_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["collection_id"], ["saved_collections.id"], ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "collection_id", "paper_id", name="uq_saved_collection_papers_ref",
        ),
    )
    op.create_index(
        "ix_saved_collection_papers_collection_id",
        "saved_collection_papers",
        ["collection_id"],
    )


def downgrade() -> None:
    """Drop every table, children first."""
    op.drop_index(
        "ix_saved_collection_papers_collection_id", table_name="saved_collection_papers",
    )
    op.drop_table("saved_collection_papers")
    op.drop_table("saved_collections")
    op.drop_table("saved_paper_records")
    op.drop_index("idx_subject_catalog_group", table_name="subject_catalog")
    op.drop_table("subject_catalog")
    op.drop_table("users")
    op.drop_index("idx_papers_contributor", table_name="papers")
    op.drop_index("idx_papers_branch_semester", table_name="papers")
    op.drop_index("idx_papers_year_subject", table_name="papers")
    op.drop_index("idx_papers_subject", table_name="papers")
    op.drop_table("papers")
