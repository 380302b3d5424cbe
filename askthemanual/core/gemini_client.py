"""
Gemini File Search client.

Creates File Search stores, uploads documents into them, and answers
questions grounded on the indexed documents with the Google Gemini API.
"""

# imports built-in modules
import asyncio
import io
import json
import re
from typing import Any, List, Optional

# imports third-party modules
from google import genai
from google.genai import errors, types

# imports local modules
from askthemanual.config import config
from askthemanual.core.models import Citation, DocumentFile, QueryResult
from askthemanual.exceptions import ErrorReason, RemoteServiceError
from askthemanual.utils.logger import get_store_logger

logger = get_store_logger()

SYSTEM_INSTRUCTION = """You are a helpful assistant answering questions about the user's documents.
Answer using the information found with the file search tool.
If the documents do not contain the answer, say so plainly.
Format your responses in a clear, readable style that works well with markdown rendering:
short paragraphs, numbered or bulleted lists, **bold** for key terms."""

SUGGESTION_PROMPT = """Using the documents in the file search store, write {count} short,
specific questions a user could ask about them. Each question must be answerable
from the documents. Return only a JSON array of strings, with no other text."""

MAX_SUGGESTIONS = 4

# Fragments Gemini puts in error messages for unusable keys
_CREDENTIAL_MESSAGES = ("api key not valid", "requested entity was not found")

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")
_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def classify_api_error(error: errors.APIError) -> ErrorReason:
    """Map a Gemini API error to an :class:`ErrorReason`.

    Parameters
    ----------
    error : errors.APIError
        Error raised by the ``google-genai`` SDK.

    Returns
    -------
    ErrorReason
        The classified reason. Message matching is only used for the
        credential case, where Gemini reports bad keys as 400/404.
    """
    message = (error.message or str(error)).lower()
    if any(fragment in message for fragment in _CREDENTIAL_MESSAGES):
        return ErrorReason.INVALID_CREDENTIAL
    if error.code in (401, 403):
        return ErrorReason.INVALID_CREDENTIAL
    if error.code == 404:
        return ErrorReason.NOT_FOUND
    if error.code == 429:
        return ErrorReason.RATE_LIMITED
    if error.code is not None and error.code >= 500:
        return ErrorReason.UNAVAILABLE
    return ErrorReason.UNKNOWN


def _remote_error(operation: str, error: errors.APIError) -> RemoteServiceError:
    reason = classify_api_error(error)
    logger.error(f"{operation} failed ({reason.value}): {error}")
    return RemoteServiceError(f"{operation} failed", reason, str(error))


def parse_suggestions(text: Optional[str], limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Extract questions from the model's reply.

    Accepts a JSON array (optionally inside a code fence) and falls back
    to one question per line.
    """
    if not text:
        return []

    cleaned = _FENCE.sub("", text.strip())
    questions: List[str] = []
    try:
        data = json.loads(cleaned)
        if isinstance(data, list):
            questions = [
                item.strip() for item in data if isinstance(item, str) and item.strip()
            ]
    except json.JSONDecodeError:
        for line in cleaned.splitlines():
            line = _LIST_MARKER.sub("", line).strip().strip('"').strip()
            if line and line not in ("[", "]"):
                questions.append(line.rstrip(","))

    return questions[:limit]


def extract_citations(response: types.GenerateContentResponse) -> List[Citation]:
    """Collect grounding chunks from the first candidate."""
    if not response.candidates:
        return []
    metadata = response.candidates[0].grounding_metadata
    if not metadata or not metadata.grounding_chunks:
        return []

    citations = []
    for chunk in metadata.grounding_chunks:
        context = chunk.retrieved_context
        citations.append(Citation(excerpt_text=context.text if context else None))
    return citations


class GeminiFileSearchClient:
    """Retrieval backend built on Gemini File Search stores.

    Parameters
    ----------
    model : Optional[str]
        Model used for answers and suggestions. Defaults to
        ``config.GEMINI_MODEL``.
    poll_interval : Optional[float]
        Seconds between upload operation polls.
    upload_timeout : Optional[float]
        Maximum seconds to wait for one document to be indexed.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        poll_interval: Optional[float] = None,
        upload_timeout: Optional[float] = None,
    ):
        self.model = model or config.GEMINI_MODEL
        self.poll_interval = (
            config.OPERATION_POLL_SECONDS if poll_interval is None else poll_interval
        )
        self.upload_timeout = (
            config.UPLOAD_TIMEOUT if upload_timeout is None else upload_timeout
        )
        self._client: Optional[genai.Client] = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            raise RemoteServiceError("Gemini client is not initialized")
        return self._client

    async def initialize(self, credential: Optional[str]) -> None:
        """Create the Gemini client with ``credential`` or the preset key.

        Raises
        ------
        RemoteServiceError
            With ``INVALID_CREDENTIAL`` if no key is available or the SDK
            rejects it.
        """
        api_key = credential or config.GOOGLE_API_KEY
        if not api_key or not api_key.strip():
            raise RemoteServiceError(
                "Gemini client initialization failed",
                ErrorReason.INVALID_CREDENTIAL,
                "no API key provided",
            )
        try:
            self._client = genai.Client(api_key=api_key.strip())
        except ValueError as e:
            raise RemoteServiceError(
                "Gemini client initialization failed",
                ErrorReason.INVALID_CREDENTIAL,
                str(e),
            ) from e
        logger.info("Gemini client initialized")

    def _file_search_config(self, store_id: str, **kwargs: Any) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            tools=[
                types.Tool(
                    file_search=types.FileSearch(file_search_store_names=[store_id])
                )
            ],
            **kwargs,
        )

    async def create_store(self, name: str) -> str:
        try:
            store = await self.client.aio.file_search_stores.create(
                config={"display_name": name}
            )
        except errors.APIError as e:
            raise _remote_error("Creating File Search store", e) from e
        if not store.name:
            raise RemoteServiceError("Creating File Search store failed", details="no name")
        return store.name

    async def upload_document(self, store_id: str, file: DocumentFile) -> None:
        """Upload ``file`` and wait until it is indexed.

        Polls the long-running operation every ``poll_interval`` seconds.
        """
        source = str(file.path) if file.path is not None else io.BytesIO(file.content)
        try:
            operation = await self.client.aio.file_search_stores.upload_to_file_search_store(
                file_search_store_name=store_id,
                file=source,
                config={"display_name": file.name, "mime_type": file.mime_type},
            )
            deadline = asyncio.get_running_loop().time() + self.upload_timeout
            while not operation.done:
                if asyncio.get_running_loop().time() > deadline:
                    raise RemoteServiceError(
                        f"Indexing {file.name} timed out",
                        ErrorReason.UNAVAILABLE,
                        f"still processing after {self.upload_timeout}s",
                    )
                logger.debug(f"{file.name} still processing...")
                await asyncio.sleep(self.poll_interval)
                operation = await self.client.aio.operations.get(operation)
        except errors.APIError as e:
            raise _remote_error(f"Uploading {file.name}", e) from e

        if operation.error:
            raise RemoteServiceError(
                f"Indexing {file.name} failed", details=str(operation.error)
            )

    async def suggest_questions(self, store_id: str) -> List[str]:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=SUGGESTION_PROMPT.format(count=MAX_SUGGESTIONS),
                config=self._file_search_config(store_id),
            )
        except errors.APIError as e:
            raise _remote_error("Generating suggestions", e) from e
        return parse_suggestions(response.text)

    async def query(self, store_id: str, text: str) -> QueryResult:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=text,
                config=self._file_search_config(
                    store_id, system_instruction=SYSTEM_INSTRUCTION
                ),
            )
        except errors.APIError as e:
            raise _remote_error("File search query", e) from e
        return QueryResult(
            answer_text=response.text or "",
            citations=tuple(extract_citations(response)),
        )

    async def dispose_store(self, store_id: str) -> None:
        try:
            await self.client.aio.file_search_stores.delete(
                name=store_id, config={"force": True}
            )
        except errors.APIError as e:
            raise _remote_error("Deleting File Search store", e) from e
