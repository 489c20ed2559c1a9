"""Unit tests for word search and review bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from sqlalchemy import CheckConstraint

from tsumitan.models.word import Word
from tsumitan.services.word_service import WordNotFoundError, WordService


@dataclass
class _FakeScalars:
    words: list[Word]

    def all(self) -> list[Word]:
        return self.words


@dataclass
class _FakeResult:
    """Simple result stub for async session tests."""

    words: list[Word]

    def scalar_one_or_none(self) -> Word | None:
        return self.words[0] if self.words else None

    def scalars(self) -> _FakeScalars:
        return _FakeScalars(self.words)


@dataclass
class _FakeSession:
    """Minimal async session stub recording writes."""

    existing: list[Word] = field(default_factory=list)
    added: list[Word] = field(default_factory=list)
    statements: list[object] = field(default_factory=list)
    commits: int = 0
    rollbacks: int = 0
    fail_flush: bool = False

    async def execute(self, statement: object) -> _FakeResult:
        self.statements.append(statement)
        return _FakeResult(self.existing)

    def add(self, instance: Word) -> None:
        self.added.append(instance)

    async def flush(self) -> None:
        if self.fail_flush:
            raise RuntimeError("flush failed")

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.mark.asyncio
async def test_record_search_creates_new_word() -> None:
    session = _FakeSession()

    word = await WordService().record_search(session, user_id="uid-1", word="  ephemeral ")  # type: ignore[arg-type]

    assert session.added == [word]
    assert word.user_id == "uid-1"
    assert word.word == "ephemeral"
    assert word.search_count == 1
    assert word.review_count == 0
    assert session.commits == 1


@pytest.mark.asyncio
async def test_record_search_increments_existing_word() -> None:
    existing = Word(user_id="uid-1", word="ephemeral", search_count=2, review_count=0)
    session = _FakeSession(existing=[existing])

    word = await WordService().record_search(session, user_id="uid-1", word="ephemeral")  # type: ignore[arg-type]

    assert word is existing
    assert word.search_count == 3
    assert session.added == []


@pytest.mark.asyncio
async def test_record_search_rejects_blank_word() -> None:
    session = _FakeSession()

    with pytest.raises(ValueError):
        await WordService().record_search(session, user_id="uid-1", word="   ")  # type: ignore[arg-type]
    assert session.statements == []


@pytest.mark.asyncio
async def test_record_search_rolls_back_on_flush_failure() -> None:
    session = _FakeSession(fail_flush=True)

    with pytest.raises(RuntimeError):
        await WordService().record_search(session, user_id="uid-1", word="ephemeral")  # type: ignore[arg-type]

    assert session.rollbacks == 1
    assert session.commits == 0


@pytest.mark.asyncio
async def test_record_review_increments_and_stamps() -> None:
    existing = Word(user_id="uid-1", word="ephemeral", search_count=1, review_count=0)
    session = _FakeSession(existing=[existing])

    word = await WordService().record_review(session, user_id="uid-1", word="ephemeral")  # type: ignore[arg-type]

    assert word.review_count == 1
    assert word.last_reviewed_at is not None
    assert session.commits == 1


@pytest.mark.asyncio
async def test_record_review_of_unknown_word_raises() -> None:
    with pytest.raises(WordNotFoundError) as exc_info:
        await WordService().record_review(_FakeSession(), user_id="uid-1", word="ephemeral")  # type: ignore[arg-type]

    assert exc_info.value.word == "ephemeral"


@pytest.mark.asyncio
async def test_pending_words_returns_unreviewed_records() -> None:
    pending = [
        Word(user_id="uid-1", word="aplomb", search_count=1, review_count=0),
        Word(user_id="uid-1", word="ephemeral", search_count=4, review_count=0),
    ]
    session = _FakeSession(existing=pending)

    words = await WordService().pending_words(session, user_id="uid-1")  # type: ignore[arg-type]

    assert [word.word for word in words] == ["aplomb", "ephemeral"]
    compiled = str(session.statements[0])
    assert "review_count" in compiled
    assert "ORDER BY words.word" in compiled


def test_word_counter_checks_follow_naming_convention() -> None:
    names = {
        constraint.name
        for constraint in Word.__table__.constraints
        if isinstance(constraint, CheckConstraint)
    }

    assert names == {
        "ck_words_search_count_non_negative",
        "ck_words_review_count_non_negative",
    }
