"""
Session data model.

Plain dataclasses for the live chat session, its turns, pending files
and upload progress.
"""

# imports built-in modules
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple


class SessionStatus(str, Enum):
    """Lifecycle state of a chat session."""

    INITIALIZING = "initializing"
    WELCOME = "welcome"
    UPLOADING = "uploading"
    CHATTING = "chatting"
    ERROR = "error"


class Role(str, Enum):
    """Author of a chat turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Citation:
    """A grounding chunk returned with an answer."""

    excerpt_text: Optional[str] = None


@dataclass(frozen=True)
class Turn:
    """One message in the chat history. Immutable once appended."""

    role: Role
    text: str
    grounding_chunks: Tuple[Citation, ...] = ()

    def key(self, index: int) -> str:
        """Display key built from position, role and text."""
        return f"{self.role.value}-{index}-{self.text}"


@dataclass(frozen=True)
class DocumentFile:
    """A document waiting to be uploaded.

    Exactly one of ``path`` (file on disk) or ``content`` (bytes in
    memory) must be set.
    """

    name: str
    path: Optional[Path] = None
    content: Optional[bytes] = None
    mime_type: Optional[str] = None

    def __post_init__(self):
        if (self.path is None) == (self.content is None):
            raise ValueError("DocumentFile needs exactly one of path or content")
        if self.path is not None and not isinstance(self.path, Path):
            object.__setattr__(self, "path", Path(self.path))
        if self.mime_type is None:
            guessed, _ = mimetypes.guess_type(self.name)
            object.__setattr__(self, "mime_type", guessed or "application/octet-stream")

    @property
    def size(self) -> int:
        if self.content is not None:
            return len(self.content)
        return self.path.stat().st_size


@dataclass(frozen=True)
class UploadProgress:
    """One progress report from the upload pipeline."""

    current: int
    total: int
    message: str
    file_name: str = ""

    @property
    def fraction(self) -> float:
        return self.current / self.total if self.total > 0 else 0.0


@dataclass(frozen=True)
class QueryResult:
    """Answer text and citations for one chat turn."""

    answer_text: str
    citations: Tuple[Citation, ...] = ()


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload pipeline run."""

    handle: str
    suggested_questions: List[str]
    document_name: str


@dataclass
class Session:
    """The single live chat session.

    ``chat_history`` is append-only and ``pending_files`` may only be
    edited while the session is in ``WELCOME``.
    """

    status: SessionStatus = SessionStatus.INITIALIZING
    active_store_id: Optional[str] = None
    document_name: str = ""
    chat_history: List[Turn] = field(default_factory=list)
    pending_files: List[DocumentFile] = field(default_factory=list)
    upload_progress: Optional[UploadProgress] = None
    example_questions: List[str] = field(default_factory=list)
    last_error: Optional[str] = None
    credential_error: Optional[str] = None
    notice: Optional[str] = None
    query_pending: bool = False
