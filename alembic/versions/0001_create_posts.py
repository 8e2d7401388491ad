"""create posts, parsed_titles, rules and rule_matches

Revision ID: 0001_create_posts
Revises:
Create Date: 2023-02-16 04:22:03.000000

Parsed titles and rule matches get a surrogate integer key so rows keep their
insertion order; the foreign-key columns are indexed for the per-post and
per-rule lookups.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_create_posts"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "posts",
        sa.Column("id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("created_utc", sa.Text(), nullable=False),
        sa.Column("downs", sa.Integer(), nullable=True),
        sa.Column("link_flair_text", sa.Text(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("ups", sa.Integer(), nullable=True),
        sa.Column("url", sa.Text(), nullable=True),
    )

    op.create_table(
        "parsed_titles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("post_id", sa.Text(), sa.ForeignKey("posts.id"), nullable=False),
        sa.Column("product_type", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price_dollars", sa.Integer(), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("extra_details", sa.Text(), nullable=True),
    )
    op.create_index("ix_parsed_titles_post_id", "parsed_titles", ["post_id"])

    op.create_table(
        "rules",
        sa.Column("id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("link_flair_pattern", sa.Text(), nullable=True),
        sa.Column("product_type_pattern", sa.Text(), nullable=True),
        sa.Column("description_pattern", sa.Text(), nullable=True),
        sa.Column("price_min", sa.Float(), nullable=True),
        sa.Column("price_max", sa.Float(), nullable=True),
    )

    op.create_table(
        "rule_matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("rule_id", sa.Text(), sa.ForeignKey("rules.id"), nullable=False),
        sa.Column("post_id", sa.Text(), sa.ForeignKey("posts.id"), nullable=False),
        sa.Column("created_utc", sa.Text(), nullable=False),
    )
    op.create_index("ix_rule_matches_rule_id", "rule_matches", ["rule_id"])
    op.create_index("ix_rule_matches_post_id", "rule_matches", ["post_id"])


def downgrade() -> None:
    op.drop_index("ix_rule_matches_post_id", table_name="rule_matches")
    op.drop_index("ix_rule_matches_rule_id", table_name="rule_matches")
    op.drop_table("rule_matches")
    op.drop_table("rules")
    op.drop_index("ix_parsed_titles_post_id", table_name="parsed_titles")
    op.drop_table("parsed_titles")
    op.drop_table("posts")
