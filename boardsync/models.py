from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from boardsync.database import Base


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    # Identity-provider subject id
    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    level: Mapped[int] = mapped_column(Integer, default=5, nullable=False)
    visit_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    visited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Meta-counter (one row per countable collection)
# ---------------------------------------------------------------------------
class Meta(Base):
    __tablename__ = "meta"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------
class Board(Base):
    __tablename__ = "boards"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    # Live article count
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# Category and tag sets in use on a board.  The composite primary key makes
# a union merge an insert-or-ignore.
class BoardCategory(Base):
    __tablename__ = "board_categories"

    board_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True
    )
    name: Mapped[str] = mapped_column(String(100), primary_key=True)


class BoardTag(Base):
    __tablename__ = "board_tags"

    board_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True
    )
    name: Mapped[str] = mapped_column(String(100), primary_key=True)


# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------
class Article(Base):
    __tablename__ = "articles"

    __table_args__ = (
        # Board feed sorted by date
        Index("ix_articles_board_id_created_at", "board_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    board_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    uid: Mapped[str] = mapped_column(String(128), nullable=False)
    user_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_display_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    summary: Mapped[str] = mapped_column(Text, default="", nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    # [{"id": ..., "thumbId": ..., ...}]
    images: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    read_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    like_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    board_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    article_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# Temp-file staging record
# ---------------------------------------------------------------------------
class TempFile(Base):
    __tablename__ = "temp_files"

    # Last path segment of the uploaded blob; matches an image id or thumbId.
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    content_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    crc32c: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
