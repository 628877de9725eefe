"""Memory data models."""

from datetime import date as CalendarDate, datetime, timezone
from typing import List, Dict
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Turn(BaseModel):
    """One user utterance plus the assistant's reply to it."""
    user_text: str
    assistant_text: str
    timestamp: datetime = Field(default_factory=utc_now)


class HistoryState(BaseModel):
    """Bounded recent-turn buffer plus the never-evicting turn counter."""
    turns: List[Turn] = Field(default_factory=list)
    turn_count: int = 0


class CategorySummary(BaseModel):
    """Condensed summary of a window of turns, filed under one category."""
    category: str
    text: str
    timestamp: datetime = Field(default_factory=utc_now)
    turn_count_at_generation: int


# category -> summaries, oldest first
CategoryLog = Dict[str, List[CategorySummary]]


class ClinicalNote(BaseModel):
    """Structured session note generated every clinical interval."""
    session_number: int
    text: str
    timestamp: datetime = Field(default_factory=utc_now)
    turn_count_at_generation: int


class DiaryEntry(BaseModel):
    """Narrative summary of one conversation-local calendar day."""
    date: CalendarDate
    text: str
    timestamp: datetime = Field(default_factory=utc_now)
    turn_count: int


class OverallSummary(BaseModel):
    """Rollup narrative across all tiers, cached until regenerated."""
    text: str
    generated_at: datetime = Field(default_factory=utc_now)
