"""Create regulation cache, changelog and annotation tables.

Revision ID: f1a2b3c4d5e6
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "f1a2b3c4d5e6"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()
        ),
    ]


def _annotation_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("cfr_part", sa.String(10), nullable=False),
        sa.Column("section_id", sa.String(50), nullable=False),
        sa.Column(
            "paragraph_ids",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "impacted_by_change",
            sa.Boolean(),
            nullable=False,
            server_default="false",
        ),
        *_timestamps(),
    ]


def upgrade() -> None:
    # Create the enum via raw DDL; create_table would otherwise emit its own
    # CREATE TYPE through asyncpg.
    op.execute(
        "CREATE TYPE changelog_change_type AS ENUM ('substantive', 'editorial')"
    )
    changelog_change_type = postgresql.ENUM(
        "substantive", "editorial", name="changelog_change_type", create_type=False
    )

    op.create_table(
        "cached_section",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("part", sa.String(10), nullable=False),
        sa.Column("section", sa.String(50), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("subpart_label", sa.String(10), nullable=True),
        sa.Column("subpart_title", sa.Text(), nullable=True),
        sa.Column(
            "content",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("raw_xml", sa.Text(), nullable=False, server_default=""),
        sa.Column("source_version", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_cached_section"),
        sa.UniqueConstraint("section", name="uq_cached_section_section"),
    )
    op.create_index("idx_cached_section_part", "cached_section", ["part"])
    op.create_index(
        "idx_cached_section_source_version", "cached_section", ["source_version"]
    )

    op.create_table(
        "cached_part_toc",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("part", sa.String(10), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("toc", postgresql.JSONB(), nullable=False),
        sa.Column("source_version", sa.String(20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_cached_part_toc"),
        sa.UniqueConstraint("part", name="uq_cached_part_toc_part"),
    )

    op.create_table(
        "reg_changelog",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.String(50), nullable=False),
        sa.Column("version_date", sa.Date(), nullable=False),
        sa.Column("change_type", changelog_change_type, nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("federal_reg_citation", sa.String(100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_reg_changelog"),
    )
    op.create_index(
        "idx_reg_changelog_section_version",
        "reg_changelog",
        ["section_id", "version_date"],
    )

    op.create_table(
        "highlight",
        *_annotation_columns(),
        sa.Column("color", sa.String(20), nullable=False, server_default="yellow"),
        sa.PrimaryKeyConstraint("id", name="pk_highlight"),
    )
    op.create_table(
        "note",
        *_annotation_columns(),
        sa.Column("text", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_note"),
    )
    op.create_table(
        "bookmark",
        *_annotation_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_bookmark"),
    )
    for table in ("highlight", "note", "bookmark"):
        op.create_index(
            f"idx_{table}_user_section", table, ["user_id", "section_id"]
        )
        op.create_index(f"idx_{table}_section", table, ["section_id"])


def downgrade() -> None:
    for table in ("bookmark", "note", "highlight"):
        op.drop_index(f"idx_{table}_section", table_name=table)
        op.drop_index(f"idx_{table}_user_section", table_name=table)
        op.drop_table(table)

    op.drop_index("idx_reg_changelog_section_version", table_name="reg_changelog")
    op.drop_table("reg_changelog")
    op.drop_table("cached_part_toc")
    op.drop_index("idx_cached_section_source_version", table_name="cached_section")
    op.drop_index("idx_cached_section_part", table_name="cached_section")
    op.drop_table("cached_section")
    op.execute("DROP TYPE changelog_change_type")
