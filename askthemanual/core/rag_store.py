"""
File Search store lifecycle.

Wraps the remote backend with handle bookkeeping: one active store at a
time, no calls against disposed handles, and idempotent fire-and-forget
disposal.
"""

# imports built-in modules
import asyncio
from typing import List, Optional, Protocol, Set

# imports local modules
from askthemanual.core.models import DocumentFile, QueryResult
from askthemanual.exceptions import QueryError, StoreInUseError, UnknownStoreError
from askthemanual.utils.logger import get_store_logger

logger = get_store_logger()


class RagBackend(Protocol):
    """Remote retrieval service contract. All calls may raise."""

    async def initialize(self, credential: Optional[str]) -> None: ...

    async def create_store(self, name: str) -> str: ...

    async def upload_document(self, store_id: str, file: DocumentFile) -> None: ...

    async def suggest_questions(self, store_id: str) -> List[str]: ...

    async def query(self, store_id: str, text: str) -> QueryResult: ...

    async def dispose_store(self, store_id: str) -> None: ...


class RagStoreLifecycle:
    """Owns the session's File Search store handle.

    Parameters
    ----------
    backend : RagBackend
        Remote collaborator that performs the actual calls.
    """

    def __init__(self, backend: RagBackend):
        self.backend = backend
        self._active: Optional[str] = None
        self._known: Set[str] = set()
        self._disposed: Set[str] = set()
        self._background: Set[asyncio.Task] = set()

    @property
    def active_handle(self) -> Optional[str]:
        return self._active

    def _check(self, handle: str) -> None:
        if handle not in self._known or handle in self._disposed:
            raise UnknownStoreError(handle)

    async def create(self, name: str) -> str:
        """Create a store and make it the active handle.

        Raises
        ------
        StoreInUseError
            If a handle is still active.
        """
        if self._active is not None:
            raise StoreInUseError(self._active)

        logger.info(f"Creating File Search store: {name}")
        handle = await self.backend.create_store(name)
        self._known.add(handle)
        self._active = handle
        logger.info(f"Created File Search store: {handle}")
        return handle

    async def upload(self, handle: str, file: DocumentFile) -> None:
        self._check(handle)
        logger.info(f"Uploading {file.name} to {handle}")
        await self.backend.upload_document(handle, file)
        logger.info(f"Indexed {file.name}")

    async def suggest_questions(self, handle: str) -> List[str]:
        self._check(handle)
        questions = await self.backend.suggest_questions(handle)
        logger.debug(f"Got {len(questions)} suggested questions for {handle}")
        return questions

    async def query(self, handle: str, text: str) -> QueryResult:
        self._check(handle)
        try:
            return await self.backend.query(handle, text)
        except Exception as e:
            raise QueryError("File search query failed", str(e)) from e

    async def dispose(self, handle: str) -> None:
        """Delete a store. Safe to call repeatedly; never raises.

        The handle counts as disposed before the remote call completes,
        so concurrent callers do not issue a second delete.
        """
        if handle in self._disposed:
            logger.debug(f"Store already disposed: {handle}")
            return

        self._disposed.add(handle)
        if self._active == handle:
            self._active = None

        try:
            await self.backend.dispose_store(handle)
            logger.info(f"Deleted File Search store: {handle}")
        except Exception as e:
            logger.error(f"Failed to delete File Search store {handle}: {e}")

    def dispose_in_background(self, handle: str) -> None:
        """Schedule :meth:`dispose` without waiting for it.

        The handle is released immediately so a new store can be created
        while the delete is still in flight.
        """
        if handle in self._disposed:
            return
        if self._active == handle:
            self._active = None

        task = asyncio.get_running_loop().create_task(self.dispose(handle))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for background disposals still in flight."""
        if self._background:
            await asyncio.gather(*list(self._background))
