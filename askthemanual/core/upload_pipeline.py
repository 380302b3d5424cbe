"""
Upload pipeline.

Turns a list of documents into a populated File Search store plus a set
of starter questions, reporting progress after every step.
"""

# imports built-in modules
import asyncio
import inspect
import time
from typing import Awaitable, Callable, Optional, Sequence, Union

# imports local modules
from askthemanual.config import config
from askthemanual.core.models import DocumentFile, UploadProgress, UploadResult
from askthemanual.core.rag_store import RagStoreLifecycle
from askthemanual.exceptions import PipelineError
from askthemanual.utils.logger import get_app_logger

logger = get_app_logger()

MSG_CREATING = "Creating document index..."
MSG_EMBEDDING = "Generating embeddings..."
MSG_SUGGESTING = "Generating suggestions..."
MSG_DONE = "All set!"

ProgressCallback = Callable[[UploadProgress], Union[None, Awaitable[None]]]


def derive_document_name(files: Sequence[DocumentFile]) -> str:
    """Build the display label for a set of uploaded files.

    One file gives its name, two give ``"A & B"``, more give
    ``"N documents"``.
    """
    if not files:
        raise ValueError("At least one file is required")
    if len(files) == 1:
        return files[0].name
    if len(files) == 2:
        return f"{files[0].name} & {files[1].name}"
    return f"{len(files)} documents"


def new_store_name(prefix: Optional[str] = None) -> str:
    """Return a store display name like ``chat-session-1718000000000``."""
    return f"{prefix or config.STORE_NAME_PREFIX}-{int(time.time() * 1000)}"


class UploadOrchestrator:
    """Run the create → upload → suggest pipeline strictly in sequence.

    Parameters
    ----------
    stores : RagStoreLifecycle
        Store lifecycle used for every remote call.
    completion_hold : Optional[float]
        Seconds to pause after the final "All set!" report. Defaults to
        ``config.COMPLETION_HOLD_SECONDS``.
    """

    def __init__(
        self,
        stores: RagStoreLifecycle,
        completion_hold: Optional[float] = None,
    ):
        self.stores = stores
        self.completion_hold = (
            config.COMPLETION_HOLD_SECONDS if completion_hold is None else completion_hold
        )

    async def run(
        self,
        files: Sequence[DocumentFile],
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """Index ``files`` into a new store.

        Parameters
        ----------
        files : Sequence[DocumentFile]
            Non-empty, ordered list of documents. Uploaded in this order.
        on_progress : Optional[ProgressCallback]
            Called (or awaited, if it returns an awaitable) with every
            progress report.

        Returns
        -------
        UploadResult
            The populated handle, suggested questions and display name.

        Raises
        ------
        PipelineError
            If any step fails. ``handle`` is set when the store had
            already been created, and is left for the caller to dispose.
        """
        if not files:
            raise ValueError("At least one file is required")

        total = len(files) + 2

        async def report(current: int, message: str, file_name: str = "") -> None:
            progress = UploadProgress(current, total, message, file_name)
            logger.debug(f"Upload progress {current}/{total}: {message} {file_name}")
            if on_progress is not None:
                result = on_progress(progress)
                if inspect.isawaitable(result):
                    await result

        await report(0, MSG_CREATING)
        try:
            handle = await self.stores.create(new_store_name())
        except Exception as e:
            logger.error(f"Store creation failed: {e}")
            raise PipelineError("creating the document index", e) from e

        await report(1, MSG_EMBEDDING)
        for i, file in enumerate(files, start=1):
            try:
                await self.stores.upload(handle, file)
            except Exception as e:
                logger.error(f"Upload of {file.name} failed: {e}")
                raise PipelineError(f"uploading {file.name}", e, handle) from e
            await report(1 + i, MSG_EMBEDDING, f"({i}/{len(files)}) {file.name}")

        try:
            questions = await self.stores.suggest_questions(handle)
        except Exception as e:
            logger.error(f"Suggestion generation failed: {e}")
            raise PipelineError("generating suggestions", e, handle) from e
        await report(total, MSG_SUGGESTING)

        await report(total, MSG_DONE)
        if self.completion_hold > 0:
            await asyncio.sleep(self.completion_hold)

        document_name = derive_document_name(files)
        logger.info(f"Indexed {document_name} into {handle}")
        return UploadResult(handle, list(questions), document_name)
