"""Editor package containing the document model, history and session registry."""

from .document_model import DocumentSession
from .history import ContentHistory, HistoryPolicy
from .insertion import SNIPPETS, InsertionResult, MarkupSnippet, insert_markup
from .workspace import ImportBatchResult, SessionRegistry

__all__ = [
    "ContentHistory",
    "DocumentSession",
    "HistoryPolicy",
    "ImportBatchResult",
    "InsertionResult",
    "MarkupSnippet",
    "SNIPPETS",
    "SessionRegistry",
    "insert_markup",
]
