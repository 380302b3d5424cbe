"""
Sample documents offered on the welcome screen.

Lets a user try the app without uploading their own manual.
"""

# imports built-in modules
from dataclasses import dataclass
from typing import List, Optional

# imports third-party modules
import httpx

# imports local modules
from askthemanual.config import config
from askthemanual.core.models import DocumentFile
from askthemanual.exceptions import SampleFetchError
from askthemanual.utils.logger import get_app_logger

logger = get_app_logger()


@dataclass(frozen=True)
class SampleDocument:
    """A downloadable demo document."""

    name: str
    details: str
    url: str
    file_name: str


SAMPLE_DOCUMENTS: List[SampleDocument] = [
    SampleDocument(
        name="Iphone 17 Pro Max Manual",
        details="8 pages · PDF",
        url="https://cdsassets.apple.com/live/6GJYWVAV/information/locale/en-gb/iphone-17-pro-max-info.pdf",
        file_name="apple-mobile-manual.pdf",
    ),
    SampleDocument(
        name="LG Washer Manual",
        details="36 pages · PDF",
        url="https://www.lg.com/us/support/products/documents/WM2077CW.pdf",
        file_name="lg-washer-manual.pdf",
    ),
]


def find_sample(name: str) -> Optional[SampleDocument]:
    """Look up a sample by its display name."""
    for sample in SAMPLE_DOCUMENTS:
        if sample.name == name:
            return sample
    return None


class SampleLibrary:
    """Downloads sample documents into in-memory :class:`DocumentFile` objects.

    Parameters
    ----------
    client : Optional[httpx.AsyncClient]
        HTTP client to use. A short-lived client is created per fetch when
        omitted.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    async def fetch(self, sample: SampleDocument) -> DocumentFile:
        """Download ``sample``.

        Raises
        ------
        SampleFetchError
            On network errors or a non-2xx response.
        """
        logger.info(f"Fetching sample document: {sample.name}")
        try:
            if self._client is not None:
                response = await self._client.get(sample.url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=config.SAMPLE_FETCH_TIMEOUT) as client:
                    response = await client.get(sample.url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SampleFetchError(
                sample.name, f"{e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise SampleFetchError(sample.name, str(e)) from e

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        return DocumentFile(
            name=sample.file_name,
            content=response.content,
            mime_type=content_type or None,
        )
