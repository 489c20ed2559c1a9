"""Per-user word search and review statistics."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tsumitan.db.base import Base, TimestampMixin


class Word(Base, TimestampMixin):
    """One word a user has looked up, keyed by the identity provider's user id."""

    __tablename__ = "words"
    __table_args__ = (
        Index("ix_words_user_id_review_count", "user_id", "review_count"),
        CheckConstraint("search_count >= 0", name="search_count_non_negative"),
        CheckConstraint("review_count >= 0", name="review_count_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    word: Mapped[str] = mapped_column(String(255), primary_key=True)
    search_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
