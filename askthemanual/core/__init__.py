"""
Core business logic package.

Contains the session state machine, upload pipeline, File Search store
lifecycle and the Gemini backend.
"""

from askthemanual.core.models import (
    Citation,
    DocumentFile,
    QueryResult,
    Role,
    Session,
    SessionStatus,
    Turn,
    UploadProgress,
    UploadResult,
)
from askthemanual.core.rag_store import RagBackend, RagStoreLifecycle
from askthemanual.core.samples import SAMPLE_DOCUMENTS, SampleDocument, SampleLibrary
from askthemanual.core.session import CredentialProvider, SessionStateMachine
from askthemanual.core.suggestions import SuggestionRotator
from askthemanual.core.upload_pipeline import UploadOrchestrator, derive_document_name

__all__ = [
    "Citation",
    "CredentialProvider",
    "DocumentFile",
    "QueryResult",
    "RagBackend",
    "RagStoreLifecycle",
    "Role",
    "SAMPLE_DOCUMENTS",
    "SampleDocument",
    "SampleLibrary",
    "Session",
    "SessionStateMachine",
    "SessionStatus",
    "SuggestionRotator",
    "Turn",
    "UploadOrchestrator",
    "UploadProgress",
    "UploadResult",
    "derive_document_name",
]
