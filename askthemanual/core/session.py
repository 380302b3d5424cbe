"""
Session state machine.

Drives one chat session through welcome → uploading → chatting, with an
error state for failed uploads. The host (the Chainlit app, or tests)
feeds it user events; every remote call goes through the store
lifecycle.
"""

# imports built-in modules
import inspect
from typing import Iterable, Optional, Protocol

# imports local modules
from askthemanual.core.models import (
    DocumentFile,
    Role,
    Session,
    SessionStatus,
    Turn,
    UploadProgress,
)
from askthemanual.core.rag_store import RagStoreLifecycle
from askthemanual.core.samples import SampleDocument, SampleLibrary
from askthemanual.core.upload_pipeline import ProgressCallback, UploadOrchestrator
from askthemanual.exceptions import (
    CredentialInvalidError,
    CredentialMissingError,
    PipelineError,
    SampleFetchError,
)
from askthemanual.utils.logger import get_session_logger

logger = get_session_logger()

QUERY_APOLOGY = "Sorry, I encountered an error. Please try again."


class CredentialProvider(Protocol):
    """Host capability for choosing a Gemini API key."""

    async def has_credential(self) -> bool: ...

    async def open_picker(self) -> None: ...

    async def get_credential(self) -> Optional[str]: ...

    async def clear_credential(self) -> None: ...


class SessionStateMachine:
    """Controller for the single live :class:`Session`.

    Parameters
    ----------
    stores : RagStoreLifecycle
        Store lifecycle wrapping the remote backend.
    credentials : Optional[CredentialProvider]
        Host key picker. Ignored when ``preset_credential`` is given.
    preset_credential : Optional[str]
        API key from the environment. Always counts as available.
    orchestrator : Optional[UploadOrchestrator]
        Upload pipeline. Built from ``stores`` when omitted.
    samples : Optional[SampleLibrary]
        Downloader for sample documents.
    """

    def __init__(
        self,
        stores: RagStoreLifecycle,
        credentials: Optional[CredentialProvider] = None,
        preset_credential: Optional[str] = None,
        orchestrator: Optional[UploadOrchestrator] = None,
        samples: Optional[SampleLibrary] = None,
    ):
        self.stores = stores
        self.credentials = credentials
        self.preset_credential = preset_credential or None
        self.orchestrator = orchestrator or UploadOrchestrator(stores)
        self.samples = samples or SampleLibrary()
        self.session = Session()
        self.credential_available = False
        self._torn_down = False

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    def _transition(self, status: SessionStatus) -> None:
        if self.session.status != status:
            logger.info(f"Session {self.session.status.value} -> {status.value}")
        self.session.status = status

    # Lifecycle ---------------------------------------------------------------

    async def start(self) -> None:
        """Leave ``INITIALIZING`` and run the first credential check."""
        if self.status is not SessionStatus.INITIALIZING:
            return
        await self.refresh_credential()
        self._transition(SessionStatus.WELCOME)

    async def refresh_credential(self) -> bool:
        """Re-check key availability. Call whenever the host regains focus."""
        if self.preset_credential:
            self.credential_available = True
        elif self.credentials is not None:
            try:
                self.credential_available = bool(await self.credentials.has_credential())
            except Exception as e:
                logger.error(f"Error checking for API key: {e}")
                self.credential_available = False
        return self.credential_available

    async def select_credential(self) -> bool:
        """Open the host key picker, then re-check availability."""
        if self.preset_credential:
            self.credential_available = True
            return True
        if self.credentials is None:
            logger.warning("API key selection is not available in this environment")
            return False

        try:
            await self.credentials.open_picker()
        except Exception as e:
            logger.error(f"Failed to open API key selection: {e}")
            return self.credential_available

        available = await self.refresh_credential()
        if available:
            self.session.credential_error = None
        return available

    async def _current_credential(self) -> Optional[str]:
        if self.preset_credential:
            return self.preset_credential
        if self.credentials is None:
            return None
        return await self.credentials.get_credential()

    async def _forget_credential(self) -> None:
        self.credential_available = False
        if self.preset_credential or self.credentials is None:
            return
        try:
            await self.credentials.clear_credential()
        except Exception as e:
            logger.error(f"Failed to clear rejected API key: {e}")

    def teardown(self) -> None:
        """Release the active store without waiting. Used on process exit.

        An upload still in flight disposes its store when it finishes.
        """
        self._torn_down = True
        handle = self.session.active_store_id or self.stores.active_handle
        if handle:
            logger.info(f"Tearing down session, disposing {handle}")
            self.stores.dispose_in_background(handle)
        self.session.active_store_id = None

    # Welcome -----------------------------------------------------------------

    def add_files(self, files: Iterable[DocumentFile]) -> None:
        if self.status is not SessionStatus.WELCOME:
            logger.warning(f"Ignoring new files while {self.status.value}")
            return
        self.session.pending_files.extend(files)

    def remove_file(self, index: int) -> None:
        if self.status is not SessionStatus.WELCOME:
            return
        if 0 <= index < len(self.session.pending_files):
            del self.session.pending_files[index]

    async def add_sample(self, sample: SampleDocument) -> bool:
        """Download ``sample`` into the pending files.

        Failures are reported through ``session.notice`` and leave the
        status unchanged.
        """
        if self.status is not SessionStatus.WELCOME:
            return False
        try:
            document = await self.samples.fetch(sample)
        except SampleFetchError as e:
            logger.error(f"Sample fetch failed: {e}")
            self.session.notice = (
                "Could not fetch the sample document. "
                "Please try uploading a local file instead."
            )
            return False

        self.session.notice = None
        self.add_files([document])
        return True

    async def start_upload(self, on_progress: Optional[ProgressCallback] = None) -> None:
        """Index the pending files and enter ``CHATTING`` on success.

        Ignored unless the session is in ``WELCOME``. ``on_progress`` is
        notified after ``session.upload_progress`` is updated.
        """
        if self.status is not SessionStatus.WELCOME:
            logger.debug(f"Ignoring start upload while {self.status.value}")
            return

        if not self.credential_available:
            self.session.credential_error = CredentialMissingError().message
            logger.warning("Upload requested without an API key")
            return
        if not self.session.pending_files:
            return

        self.session.credential_error = None
        files = list(self.session.pending_files)
        self._transition(SessionStatus.UPLOADING)

        try:
            await self.stores.backend.initialize(await self._current_credential())
        except Exception as e:
            self._fail("Initialization failed. Please select a valid API Key.", e)
            return
        if self._torn_down:
            logger.info("Session torn down before the upload started")
            return

        try:
            result = await self.orchestrator.run(files, self._progress_handler(on_progress))
        except PipelineError as e:
            if e.handle:
                self.stores.dispose_in_background(e.handle)
            if self._torn_down:
                return
            if e.is_credential_error:
                logger.warning(f"API key rejected during upload: {e}")
                self.session.credential_error = CredentialInvalidError().message
                await self._forget_credential()
                self._transition(SessionStatus.WELCOME)
            else:
                self._fail("Failed to start chat session", e)
            return
        except Exception as e:
            if self.stores.active_handle:
                self.stores.dispose_in_background(self.stores.active_handle)
            self._fail("Failed to start chat session", e)
            return
        finally:
            self.session.upload_progress = None

        if self._torn_down:
            logger.info(f"Session torn down during upload, disposing {result.handle}")
            self.stores.dispose_in_background(result.handle)
            return

        self.session.active_store_id = result.handle
        self.session.document_name = result.document_name
        self.session.example_questions = list(result.suggested_questions)
        self.session.chat_history = []
        self.session.pending_files = []
        self._transition(SessionStatus.CHATTING)

    def _progress_handler(self, listener: Optional[ProgressCallback]) -> ProgressCallback:
        async def handle(progress: UploadProgress) -> None:
            self.session.upload_progress = progress
            if listener is not None:
                result = listener(progress)
                if inspect.isawaitable(result):
                    await result

        return handle

    def _fail(self, message: str, error: Exception) -> None:
        logger.error(f"{message}: {error}")
        self.session.last_error = f"{message}: {error}"
        self._transition(SessionStatus.ERROR)

    # Chatting ----------------------------------------------------------------

    async def send_message(self, text: str) -> Optional[Turn]:
        """Ask a question about the indexed documents.

        Returns
        -------
        Optional[Turn]
            The assistant turn, or None if the message was ignored (wrong
            state, blank text, a query already pending, or the chat ended
            while the query was running).
        """
        session = self.session
        handle = session.active_store_id
        if session.status is not SessionStatus.CHATTING or not handle:
            return None
        if session.query_pending:
            logger.debug("Ignoring message while a query is pending")
            return None
        if not text or not text.strip():
            return None

        session.chat_history.append(Turn(Role.USER, text))
        session.query_pending = True
        try:
            result = await self.stores.query(handle, text)
            reply = Turn(Role.ASSISTANT, result.answer_text, tuple(result.citations))
        except Exception as e:
            logger.error(f"Failed to get response: {e}")
            reply = Turn(Role.ASSISTANT, QUERY_APOLOGY)
        finally:
            session.query_pending = False

        if self.session is not session:
            logger.info("Chat ended while a query was pending, dropping the reply")
            return None
        session.chat_history.append(reply)
        return reply

    def end_chat(self) -> None:
        """Drop the current chat and go back to the welcome state."""
        if self.status is not SessionStatus.CHATTING:
            return
        handle = self.session.active_store_id
        if handle:
            self.stores.dispose_in_background(handle)
        self._transition(SessionStatus.WELCOME)
        self.session = Session(status=SessionStatus.WELCOME)

    # Error -------------------------------------------------------------------

    def acknowledge_error(self) -> None:
        if self.status is not SessionStatus.ERROR:
            return
        self.session.last_error = None
        self._transition(SessionStatus.WELCOME)
