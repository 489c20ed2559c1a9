"""Word search and review bookkeeping per authenticated user."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tsumitan.models.word import Word

logger = structlog.get_logger(__name__)


class WordNotFoundError(Exception):
    """Raised when a review targets a word the user never searched."""

    def __init__(self, user_id: str, word: str) -> None:
        super().__init__(f"Word '{word}' has not been searched by user '{user_id}'.")
        self.user_id = user_id
        self.word = word


def _normalize_word(word: str) -> str:
    normalized = word.strip()
    if not normalized:
        raise ValueError("word must not be blank.")
    return normalized


class WordService:
    """Record searches and reviews; list words still awaiting review."""

    async def get_word(self, db_session: AsyncSession, user_id: str, word: str) -> Word | None:
        """Fetch one word record, locking it for the surrounding transaction."""
        statement = (
            select(Word)
            .where(Word.user_id == user_id, Word.word == _normalize_word(word))
            .with_for_update()
        )
        result = await db_session.execute(statement)
        return result.scalar_one_or_none()

    async def record_search(self, db_session: AsyncSession, user_id: str, word: str) -> Word:
        """Create the word with one search or bump its search count."""
        normalized = _normalize_word(word)
        record = await self.get_word(db_session=db_session, user_id=user_id, word=normalized)
        if record is None:
            record = Word(user_id=user_id, word=normalized, search_count=1, review_count=0)
            db_session.add(record)
        else:
            record.search_count += 1
        try:
            await db_session.flush()
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise
        logger.info("word_search_recorded", word=normalized, search_count=record.search_count)
        return record

    async def record_review(self, db_session: AsyncSession, user_id: str, word: str) -> Word:
        """Count one review of a previously searched word."""
        record = await self.get_word(db_session=db_session, user_id=user_id, word=word)
        if record is None:
            raise WordNotFoundError(user_id=user_id, word=word.strip())
        record.review_count += 1
        record.last_reviewed_at = datetime.now(UTC)
        try:
            await db_session.flush()
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise
        return record

    async def pending_words(self, db_session: AsyncSession, user_id: str) -> list[Word]:
        """Return searched words the user has not reviewed yet."""
        statement = (
            select(Word)
            .where(Word.user_id == user_id, Word.review_count == 0)
            .order_by(Word.word)
        )
        result = await db_session.execute(statement)
        return list(result.scalars().all())
