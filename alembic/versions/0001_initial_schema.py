"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(150), nullable=True),
        sa.Column("photo_url", sa.String(1024), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("visited_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "meta",
        sa.Column("name", sa.String(64), primary_key=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_table(
        "boards",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("title", sa.String(300), nullable=True),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    for table in ("board_categories", "board_tags"):
        op.create_table(
            table,
            sa.Column(
                "board_id",
                sa.String(128),
                sa.ForeignKey("boards.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column("name", sa.String(100), primary_key=True),
        )
    op.create_table(
        "articles",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("board_id", sa.String(128), nullable=False),
        sa.Column("uid", sa.String(128), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("user_display_name", sa.String(150), nullable=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("read_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("comment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_articles_board_id", "articles", ["board_id"])
    op.create_index("ix_articles_board_id_created_at", "articles", ["board_id", "created_at"])
    op.create_table(
        "comments",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("board_id", sa.String(128), nullable=False),
        sa.Column("article_id", sa.String(128), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_comments_board_id", "comments", ["board_id"])
    op.create_index("ix_comments_article_id", "comments", ["article_id"])
    op.create_table(
        "temp_files",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("name", sa.String(1024), nullable=False),
        sa.Column("content_type", sa.String(255), nullable=True),
        sa.Column("size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("crc32c", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_temp_files_created_at", "temp_files", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_temp_files_created_at", table_name="temp_files")
    op.drop_table("temp_files")
    op.drop_index("ix_comments_article_id", table_name="comments")
    op.drop_index("ix_comments_board_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_articles_board_id_created_at", table_name="articles")
    op.drop_index("ix_articles_board_id", table_name="articles")
    op.drop_table("articles")
    op.drop_table("board_tags")
    op.drop_table("board_categories")
    op.drop_table("boards")
    op.drop_table("meta")
    op.drop_table("users")
