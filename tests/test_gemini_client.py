"""Tests for the Gemini File Search backend, with the SDK client mocked."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import errors

from askthemanual.core import gemini_client
from askthemanual.core.gemini_client import (
    GeminiFileSearchClient,
    classify_api_error,
    extract_citations,
    parse_suggestions,
)
from askthemanual.core.models import Citation, DocumentFile
from askthemanual.exceptions import ErrorReason, RemoteServiceError


def api_error(code: int, message: str) -> errors.APIError:
    return errors.APIError(code, {"error": {"code": code, "message": message, "status": "X"}})


@pytest.fixture
def sdk():
    """Mocked ``genai.Client`` with async namespaces."""
    client = MagicMock()
    client.aio.file_search_stores.create = AsyncMock(
        return_value=SimpleNamespace(name="fileSearchStores/abc")
    )
    client.aio.file_search_stores.upload_to_file_search_store = AsyncMock(
        return_value=SimpleNamespace(done=True, error=None)
    )
    client.aio.file_search_stores.delete = AsyncMock()
    client.aio.operations.get = AsyncMock()
    client.aio.models.generate_content = AsyncMock()
    return client


@pytest.fixture
def gemini(sdk) -> GeminiFileSearchClient:
    backend = GeminiFileSearchClient(model="gemini-test", poll_interval=0, upload_timeout=5)
    backend._client = sdk
    return backend


class TestClassifyApiError:
    def test_invalid_key_message(self):
        error = api_error(400, "API key not valid. Please pass a valid API key.")
        assert classify_api_error(error) is ErrorReason.INVALID_CREDENTIAL

    def test_entity_not_found_message(self):
        error = api_error(404, "Requested entity was not found.")
        assert classify_api_error(error) is ErrorReason.INVALID_CREDENTIAL

    def test_permission_denied(self):
        assert classify_api_error(api_error(403, "denied")) is ErrorReason.INVALID_CREDENTIAL

    def test_other_not_found(self):
        assert classify_api_error(api_error(404, "store missing")) is ErrorReason.NOT_FOUND

    def test_rate_limit(self):
        assert classify_api_error(api_error(429, "slow down")) is ErrorReason.RATE_LIMITED

    def test_server_error(self):
        assert classify_api_error(api_error(503, "overloaded")) is ErrorReason.UNAVAILABLE

    def test_unknown(self):
        assert classify_api_error(api_error(400, "bad request")) is ErrorReason.UNKNOWN


class TestParseSuggestions:
    def test_json_array(self):
        assert parse_suggestions('["How do I reset?", "What is the warranty?"]') == [
            "How do I reset?",
            "What is the warranty?",
        ]

    def test_fenced_json(self):
        text = '```json\n["One?", "Two?"]\n```'
        assert parse_suggestions(text) == ["One?", "Two?"]

    def test_plain_lines(self):
        text = "1. How do I clean the filter?\n- What does error E3 mean?"
        assert parse_suggestions(text) == [
            "How do I clean the filter?",
            "What does error E3 mean?",
        ]

    def test_non_string_entries_are_dropped(self):
        text = '[{"question": "Q?"}, "How do I descale it?", 3]'
        assert parse_suggestions(text) == ["How do I descale it?"]

    def test_limit(self):
        assert len(parse_suggestions('["a", "b", "c", "d", "e"]', limit=3)) == 3

    def test_empty(self):
        assert parse_suggestions(None) == []
        assert parse_suggestions("") == []


def test_extract_citations():
    response = SimpleNamespace(
        candidates=[
            SimpleNamespace(
                grounding_metadata=SimpleNamespace(
                    grounding_chunks=[
                        SimpleNamespace(retrieved_context=SimpleNamespace(text="excerpt")),
                        SimpleNamespace(retrieved_context=None),
                    ]
                )
            )
        ]
    )
    assert extract_citations(response) == [Citation("excerpt"), Citation(None)]


def test_extract_citations_without_metadata():
    response = SimpleNamespace(candidates=[SimpleNamespace(grounding_metadata=None)])
    assert extract_citations(response) == []


class TestInitialize:
    @pytest.mark.asyncio
    async def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(gemini_client.config, "GOOGLE_API_KEY", None)
        backend = GeminiFileSearchClient()
        with pytest.raises(RemoteServiceError) as exc_info:
            await backend.initialize("  ")
        assert exc_info.value.reason is ErrorReason.INVALID_CREDENTIAL

    @pytest.mark.asyncio
    async def test_builds_client(self, monkeypatch):
        fake_client = MagicMock()
        client_cls = MagicMock(return_value=fake_client)
        monkeypatch.setattr(gemini_client.genai, "Client", client_cls)

        backend = GeminiFileSearchClient()
        await backend.initialize("my-key")

        client_cls.assert_called_once_with(api_key="my-key")
        assert backend.client is fake_client

    def test_uninitialized_client_raises(self):
        with pytest.raises(RemoteServiceError):
            GeminiFileSearchClient().client


class TestStoreCalls:
    @pytest.mark.asyncio
    async def test_create_store(self, gemini, sdk):
        assert await gemini.create_store("chat-session-1") == "fileSearchStores/abc"
        sdk.aio.file_search_stores.create.assert_awaited_once_with(
            config={"display_name": "chat-session-1"}
        )

    @pytest.mark.asyncio
    async def test_create_store_maps_errors(self, gemini, sdk):
        sdk.aio.file_search_stores.create.side_effect = api_error(
            400, "API key not valid. Please pass a valid API key."
        )
        with pytest.raises(RemoteServiceError) as exc_info:
            await gemini.create_store("s")
        assert exc_info.value.is_credential_error

    @pytest.mark.asyncio
    async def test_upload_polls_until_done(self, gemini, sdk, sample_pdf_content):
        pending = SimpleNamespace(done=False, error=None)
        sdk.aio.file_search_stores.upload_to_file_search_store.return_value = pending
        sdk.aio.operations.get.side_effect = [
            SimpleNamespace(done=False, error=None),
            SimpleNamespace(done=True, error=None),
        ]
        file = DocumentFile(name="manual.pdf", content=sample_pdf_content)

        await gemini.upload_document("fileSearchStores/abc", file)

        assert sdk.aio.operations.get.await_count == 2
        kwargs = sdk.aio.file_search_stores.upload_to_file_search_store.await_args.kwargs
        assert kwargs["file_search_store_name"] == "fileSearchStores/abc"
        assert kwargs["config"] == {"display_name": "manual.pdf", "mime_type": "application/pdf"}

    @pytest.mark.asyncio
    async def test_upload_from_path(self, gemini, sdk, tmp_path, sample_pdf_content):
        path = tmp_path / "guide.pdf"
        path.write_bytes(sample_pdf_content)

        await gemini.upload_document("fileSearchStores/abc", DocumentFile(name="guide.pdf", path=path))

        kwargs = sdk.aio.file_search_stores.upload_to_file_search_store.await_args.kwargs
        assert kwargs["file"] == str(path)

    @pytest.mark.asyncio
    async def test_upload_operation_error(self, gemini, sdk):
        sdk.aio.file_search_stores.upload_to_file_search_store.return_value = SimpleNamespace(
            done=True, error={"message": "unsupported file"}
        )
        with pytest.raises(RemoteServiceError):
            await gemini.upload_document(
                "fileSearchStores/abc", DocumentFile(name="x.txt", content=b"hello")
            )

    @pytest.mark.asyncio
    async def test_upload_timeout(self, sdk):
        backend = GeminiFileSearchClient(poll_interval=0, upload_timeout=-1)
        backend._client = sdk
        sdk.aio.file_search_stores.upload_to_file_search_store.return_value = SimpleNamespace(
            done=False, error=None
        )
        with pytest.raises(RemoteServiceError) as exc_info:
            await backend.upload_document(
                "fileSearchStores/abc", DocumentFile(name="x.txt", content=b"hello")
            )
        assert exc_info.value.reason is ErrorReason.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_query(self, gemini, sdk):
        sdk.aio.models.generate_content.return_value = SimpleNamespace(
            text="**Answer**",
            candidates=[
                SimpleNamespace(
                    grounding_metadata=SimpleNamespace(
                        grounding_chunks=[
                            SimpleNamespace(retrieved_context=SimpleNamespace(text="chunk"))
                        ]
                    )
                )
            ],
        )

        result = await gemini.query("fileSearchStores/abc", "What?")

        assert result.answer_text == "**Answer**"
        assert result.citations == (Citation("chunk"),)
        kwargs = sdk.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == "What?"
        file_search = kwargs["config"].tools[0].file_search
        assert file_search.file_search_store_names == ["fileSearchStores/abc"]

    @pytest.mark.asyncio
    async def test_suggest_questions(self, gemini, sdk):
        sdk.aio.models.generate_content.return_value = SimpleNamespace(
            text='["Q1?", "Q2?"]', candidates=[]
        )
        assert await gemini.suggest_questions("fileSearchStores/abc") == ["Q1?", "Q2?"]

    @pytest.mark.asyncio
    async def test_dispose_forces_delete(self, gemini, sdk):
        await gemini.dispose_store("fileSearchStores/abc")
        sdk.aio.file_search_stores.delete.assert_awaited_once_with(
            name="fileSearchStores/abc", config={"force": True}
        )
