"""
Pytest configuration and fixtures.

This module provides shared fixtures and configuration for all tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Keep test logs out of the working tree and skip the completion pause
os.environ.setdefault("LOGS_DIR", str(Path(tempfile.gettempdir()) / "askthemanual-test-logs"))
os.environ["COMPLETION_HOLD_SECONDS"] = "0"

from askthemanual.core.models import Citation, DocumentFile, QueryResult  # noqa: E402
from askthemanual.core.rag_store import RagStoreLifecycle  # noqa: E402
from askthemanual.core.session import SessionStateMachine  # noqa: E402
from askthemanual.core.upload_pipeline import UploadOrchestrator  # noqa: E402


class FakeBackend:
    """In-memory stand-in for the Gemini File Search backend.

    ``failures`` maps an operation name (``initialize``, ``create_store``,
    ``upload_document``, ``suggest_questions``, ``query``,
    ``dispose_store``) to the exception it should raise.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.fail_on_file: Optional[str] = None
        self.questions = ["What is covered?", "How do I reset it?"]
        self.answer = QueryResult(
            "**Reset** by holding the button.",
            (Citation("Hold the power button for 10 seconds."), Citation(None)),
        )
        self._counter = 0

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    async def initialize(self, credential):
        self.calls.append(("initialize", credential))
        self._maybe_fail("initialize")

    async def create_store(self, name):
        self.calls.append(("create_store", name))
        self._maybe_fail("create_store")
        self._counter += 1
        return f"fileSearchStores/store-{self._counter}"

    async def upload_document(self, store_id, file):
        self.calls.append(("upload_document", store_id, file.name))
        if self.fail_on_file == file.name:
            self._maybe_fail("upload_document")
        elif self.fail_on_file is None:
            self._maybe_fail("upload_document")

    async def suggest_questions(self, store_id):
        self.calls.append(("suggest_questions", store_id))
        self._maybe_fail("suggest_questions")
        return list(self.questions)

    async def query(self, store_id, text):
        self.calls.append(("query", store_id, text))
        self._maybe_fail("query")
        return self.answer

    async def dispose_store(self, store_id):
        self.calls.append(("dispose_store", store_id))
        self._maybe_fail("dispose_store")

    def calls_named(self, operation: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == operation]


class FakeKeyPicker:
    """Credential provider whose picker hands over ``key_on_pick``."""

    def __init__(self, key: Optional[str] = None, key_on_pick: Optional[str] = "picked-key"):
        self.key = key
        self.key_on_pick = key_on_pick
        self.opened = 0

    async def has_credential(self) -> bool:
        return bool(self.key)

    async def open_picker(self) -> None:
        self.opened += 1
        self.key = self.key_on_pick

    async def get_credential(self) -> Optional[str]:
        return self.key

    async def clear_credential(self) -> None:
        self.key = None


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def stores(backend: FakeBackend) -> RagStoreLifecycle:
    return RagStoreLifecycle(backend)


@pytest.fixture
def orchestrator(stores: RagStoreLifecycle) -> UploadOrchestrator:
    return UploadOrchestrator(stores, completion_hold=0)


@pytest.fixture
def key_picker() -> FakeKeyPicker:
    return FakeKeyPicker(key="user-key")


@pytest.fixture
def picker_factory():
    """Build key pickers with a chosen starting key."""
    return FakeKeyPicker


@pytest.fixture
def controller(stores, orchestrator, key_picker) -> SessionStateMachine:
    return SessionStateMachine(stores, credentials=key_picker, orchestrator=orchestrator)


@pytest.fixture
def make_files():
    """Build in-memory documents named ``doc1.pdf`` .. ``docN.pdf``."""

    def _make(count: int) -> List[DocumentFile]:
        return [
            DocumentFile(name=f"doc{i}.pdf", content=b"%PDF-1.4 sample", mime_type="application/pdf")
            for i in range(1, count + 1)
        ]

    return _make


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Provide sample PDF content for testing.

    Returns
    -------
    bytes
        Minimal valid PDF content.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
xref
0 4
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
trailer
<< /Size 4 /Root 1 0 R >>
startxref
196
%%EOF"""
