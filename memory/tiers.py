"""Typed readers for the persisted memory tiers."""

from datetime import date
from typing import Dict, List, Optional

from .models import CategorySummary, CategoryLog, ClinicalNote, DiaryEntry, OverallSummary
from .store import DurableMemoryStore, Namespace


def parse_category_log(raw: Optional[dict]) -> CategoryLog:
    return {
        category: [CategorySummary.model_validate(item) for item in items]
        for category, items in (raw or {}).items()
    }


def load_category_log(
    store: DurableMemoryStore,
    conversation_id: str,
    refresh: bool = False
) -> CategoryLog:
    return parse_category_log(
        store.get(conversation_id, Namespace.CATEGORY_SUMMARIES, refresh=refresh)
    )


def dump_category_log(log: CategoryLog) -> Dict[str, List[dict]]:
    return {
        category: [item.model_dump(mode="json") for item in items]
        for category, items in log.items()
    }


def load_clinical_notes(
    store: DurableMemoryStore,
    conversation_id: str,
    refresh: bool = False
) -> List[ClinicalNote]:
    raw = store.get(conversation_id, Namespace.CLINICAL_NOTES, refresh=refresh) or []
    return [ClinicalNote.model_validate(item) for item in raw]


def load_diary(
    store: DurableMemoryStore,
    conversation_id: str,
    refresh: bool = False
) -> List[DiaryEntry]:
    """Diary entries ordered by date."""
    raw = store.get(conversation_id, Namespace.DIARY, refresh=refresh) or {}
    entries = [DiaryEntry.model_validate(item) for item in raw.values()]
    return sorted(entries, key=lambda entry: entry.date)


def load_summary_marker(
    store: DurableMemoryStore,
    conversation_id: str,
    refresh: bool = False
) -> int:
    return int(store.get(conversation_id, Namespace.SUMMARY_MARKER, refresh=refresh) or 0)


def load_diary_marker(
    store: DurableMemoryStore,
    conversation_id: str,
    refresh: bool = False
) -> Optional[date]:
    raw = store.get(conversation_id, Namespace.DIARY_MARKER, refresh=refresh)
    return date.fromisoformat(raw) if raw else None


def load_overall_summary(
    store: DurableMemoryStore,
    conversation_id: str,
    refresh: bool = False
) -> Optional[OverallSummary]:
    raw = store.get(conversation_id, Namespace.OVERALL_SUMMARY, refresh=refresh)
    return OverallSummary.model_validate(raw) if raw else None
