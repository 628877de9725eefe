"""Trigger guards for background generators, as pure predicates over persisted state."""

from datetime import date, datetime, tzinfo
from typing import Iterable, List, Optional

from .models import Turn, ClinicalNote


def should_summarize(
    turn_count: int,
    last_marker: int,
    interval: int,
    buffered_turns: int,
    min_turns: int = 5
) -> bool:
    """Category pass is due once `interval` turns have passed since the last pass."""
    return buffered_turns >= min_turns and turn_count >= last_marker + interval


def should_write_clinical_note(
    turn_count: int,
    interval: int,
    notes: Iterable[ClinicalNote]
) -> bool:
    """A note is due on every positive multiple of `interval` not yet covered."""
    if turn_count <= 0 or turn_count % interval != 0:
        return False
    return not any(note.turn_count_at_generation == turn_count for note in notes)


def should_write_diary(today: date, last_marker: Optional[date]) -> bool:
    """A diary entry is due on the first turn of each new local day."""
    # Strictly later: a clock or timezone change must not move the marker back
    return last_marker is None or today > last_marker


def local_date(moment: datetime, tz: tzinfo) -> date:
    return moment.astimezone(tz).date()


def select_diary_turns(
    turns: List[Turn],
    target_date: date,
    tz: tzinfo,
    has_marker: bool
) -> List[Turn]:
    """
    Pick the turns a diary entry is written from.

    The very first entry of a conversation is bootstrapped from every buffered
    turn; later entries only use turns that fall on the target date.
    """
    if not has_marker:
        return list(turns)
    return [turn for turn in turns if local_date(turn.timestamp, tz) == target_date]
