"""create_catalog_tables

Revision ID: 1f4d2b7c9e30
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "1f4d2b7c9e30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "catalog_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=100), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False),
        sa.Column("tier", sa.Enum("REGULAR", "ELEVATED", name="itemtier"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("creator", sa.String(length=200), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("additional_images", sa.JSON(), nullable=False),
        sa.Column("types", sa.JSON(), nullable=False),
        sa.Column("evolution_stage", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_catalog_items_item_id"), "catalog_items", ["item_id"], unique=True)
    # Not unique: concurrent inserts may collide until the next reorganize
    op.create_index(op.f("ix_catalog_items_ordinal"), "catalog_items", ["ordinal"], unique=False)
    op.create_index(op.f("ix_catalog_items_tier"), "catalog_items", ["tier"], unique=False)
    op.create_index(op.f("ix_catalog_items_creator"), "catalog_items", ["creator"], unique=False)

    op.create_table(
        "rating_ledgers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=100), nullable=False),
        sa.Column("votes", sa.JSON(), nullable=False),
        sa.Column("average_score", sa.Float(), nullable=False),
        sa.Column("total_points", sa.Float(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_rating_ledgers_item_id"), "rating_ledgers", ["item_id"], unique=False)

    op.create_table(
        "modification_markers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("domain", sa.String(length=50), nullable=False),
        sa.Column(
            "last_modified_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_modification_markers_domain"), "modification_markers", ["domain"], unique=True)

    op.create_table(
        "favorites",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=100), nullable=False),
        sa.Column("voter_id", sa.String(length=200), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("item_id", "voter_id", name="uq_favorites_item_voter"),
    )
    op.create_index(op.f("ix_favorites_item_id"), "favorites", ["item_id"], unique=False)
    op.create_index(op.f("ix_favorites_voter_id"), "favorites", ["voter_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_favorites_voter_id"), table_name="favorites")
    op.drop_index(op.f("ix_favorites_item_id"), table_name="favorites")
    op.drop_table("favorites")

    op.drop_index(op.f("ix_modification_markers_domain"), table_name="modification_markers")
    op.drop_table("modification_markers")

    op.drop_index(op.f("ix_rating_ledgers_item_id"), table_name="rating_ledgers")
    op.drop_table("rating_ledgers")

    op.drop_index(op.f("ix_catalog_items_creator"), table_name="catalog_items")
    op.drop_index(op.f("ix_catalog_items_tier"), table_name="catalog_items")
    op.drop_index(op.f("ix_catalog_items_ordinal"), table_name="catalog_items")
    op.drop_index(op.f("ix_catalog_items_item_id"), table_name="catalog_items")
    op.drop_table("catalog_items")

    sa.Enum(name="itemtier").drop(op.get_bind(), checkfirst=True)
