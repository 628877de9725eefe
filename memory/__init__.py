"""Layered conversation memory: history, summaries, notes, diary and rollup."""

from .models import (
    Turn,
    HistoryState,
    CategorySummary,
    ClinicalNote,
    DiaryEntry,
    OverallSummary,
)
from .errors import MemoryEngineError, PersistenceFailure, InvalidInput
from .backend import KeyValueBackend
from .sqlite_store import SQLiteKeyValueBackend
from .rest_store import RestKeyValueBackend
from .store import DurableMemoryStore, Namespace
from .history import RollingHistoryManager
from .summarizer import CategorySummarizer
from .clinical import ClinicalNoteGenerator
from .diary import DailyDiaryGenerator
from .overall import OverallSummaryAggregator
from .context_manager import ContextAssembler, AssembledPrompt
from .sanitizer import ResponseSanitizer
from .vocabulary import MemoryVocabulary
from .background import BackgroundTaskRunner

__all__ = [
    "Turn",
    "HistoryState",
    "CategorySummary",
    "ClinicalNote",
    "DiaryEntry",
    "OverallSummary",
    "MemoryEngineError",
    "PersistenceFailure",
    "InvalidInput",
    "KeyValueBackend",
    "SQLiteKeyValueBackend",
    "RestKeyValueBackend",
    "DurableMemoryStore",
    "Namespace",
    "RollingHistoryManager",
    "CategorySummarizer",
    "ClinicalNoteGenerator",
    "DailyDiaryGenerator",
    "OverallSummaryAggregator",
    "ContextAssembler",
    "AssembledPrompt",
    "ResponseSanitizer",
    "MemoryVocabulary",
    "BackgroundTaskRunner",
]
