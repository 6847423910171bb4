"""SQLAlchemy ORM models."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from storycatalog.domain.story import StoryStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Association table for many-to-many relationship between stories and genres
story_genres = Table(
    "story_genres",
    Base.metadata,
    Column("story_id", Uuid, ForeignKey("stories.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Uuid, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class StoryModel(Base):
    """SQLAlchemy model for stories table.

    ``rating`` and ``rating_count`` are a cache of the story_ratings rows,
    rewritten after every rating change. ``rating`` is NULL while
    ``rating_count`` is 0.
    """

    __tablename__ = "stories"
    __table_args__ = (
        Index("ix_stories_published_updated", "is_published", "updated_at"),
        Index("ix_stories_view_count", "view_count"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=StoryStatus.ONGOING.value, nullable=False
    )
    country: Mapped[str | None] = mapped_column(String(8), nullable=True)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationship to genres (many-to-many)
    genres: Mapped[list["GenreModel"]] = relationship(
        "GenreModel", secondary=story_genres, back_populates="stories"
    )

    # Relationship to chapters (metadata only, content is stored elsewhere)
    chapters: Mapped[list["ChapterModel"]] = relationship(
        "ChapterModel",
        back_populates="story",
        order_by="ChapterModel.chapter_number",
        passive_deletes=True,
    )


class GenreModel(Base):
    """SQLAlchemy model for genres table."""

    __tablename__ = "genres"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    slug: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationship to stories (many-to-many)
    stories: Mapped[list["StoryModel"]] = relationship(
        "StoryModel", secondary=story_genres, back_populates="genres"
    )


class StoryRatingModel(Base):
    """SQLAlchemy model for per-user star ratings.

    One row per (user_id, story_id); the unique constraint is the conflict
    target for the rating upsert.
    """

    __tablename__ = "story_ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "story_id", name="uq_story_ratings_user_story"),
        CheckConstraint("score >= 1 AND score <= 5", name="ck_story_ratings_score_range"),
        Index("ix_story_ratings_story_id", "story_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    story_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ChapterModel(Base):
    """SQLAlchemy model for chapter metadata."""

    __tablename__ = "chapters"
    __table_args__ = (
        UniqueConstraint("story_id", "chapter_number", name="uq_chapters_story_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    story_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chapter_number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    story: Mapped["StoryModel"] = relationship("StoryModel", back_populates="chapters")
