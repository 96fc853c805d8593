"""Context-aware SQL completion engine."""

from __future__ import annotations

from .analyzer import ContextAnalyzer
from .catalog import CommandCatalog, ConditionCatalog, KeywordCatalog
from .completer import Completion, SqlCompleter, apply_completion, word_start
from .functions import FunctionCatalog
from .metadata import (
    MetadataCache,
    MetadataSnapshot,
    SYSTEM_DATABASES,
    SchemaSource,
    SchemaSourceError,
)
from .models import InputContext, Suggestion, SuggestionCategory
from .scoring import score_relevance
from .service import CONTEXT_LIMITS, CompletionService, extract_table_names

__all__ = [
    "CONTEXT_LIMITS",
    "CommandCatalog",
    "Completion",
    "CompletionService",
    "ConditionCatalog",
    "ContextAnalyzer",
    "FunctionCatalog",
    "InputContext",
    "KeywordCatalog",
    "MetadataCache",
    "MetadataSnapshot",
    "SYSTEM_DATABASES",
    "SchemaSource",
    "SchemaSourceError",
    "SqlCompleter",
    "Suggestion",
    "SuggestionCategory",
    "apply_completion",
    "extract_table_names",
    "score_relevance",
    "word_start",
]
