"""HTTP client for the remote catalog service.

API: https://api.mangadex.org
Auth: None required
"""

import logging
from datetime import datetime
from typing import Iterator, Optional

import requests

from .catalog import AltTitle, ChapterDelivery, FeedItem, FeedPage, SeriesMetadata
from .errors import DecodeError, NetworkError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.mangadex.org"
SINCE_FORMAT = "%Y-%m-%dT%H:%M:%S"
CHUNK_SIZE = 64 * 1024


def _text(value) -> str:
    # the API sends null for missing volume/chapter/title
    return value if isinstance(value, str) else ""


class CatalogClient:
    """Read-only client for series metadata, feeds and image delivery.

    Every call is a single blocking request; nothing is retried.
    """

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        language: str = "en",
        timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.language = language
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "shelf/0.1"})

    def _get(self, url: str, params=None, stream: bool = False) -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout, stream=stream)
        except requests.RequestException as e:
            raise NetworkError(f"Failed to retrieve {url}: {e}") from e

        if response.status_code == 404:
            response.close()
            raise NotFoundError(f"Not found: {url}", status_code=404)
        if not 200 <= response.status_code < 300:
            response.close()
            raise NetworkError(f"HTTP {response.status_code} from {url}", status_code=response.status_code)

        return response

    def _get_json(self, url: str, params=None) -> dict:
        response = self._get(url, params=params)
        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"Failed to decode response from {url}: {e}") from e

        if not isinstance(payload, dict):
            raise DecodeError(f"Unexpected response from {url}: expected a JSON object")
        return payload

    def fetch_series_metadata(self, series_id: str) -> SeriesMetadata:
        """Retrieve and decode the metadata for a series."""
        url = f"{self.api_base}/manga/{series_id}"
        payload = self._get_json(url)

        try:
            data = payload["data"]
            attributes = data["attributes"]
            alt_titles = [
                AltTitle(en=_text(alt.get("en")), ja=_text(alt.get("ja")), ja_ro=_text(alt.get("ja-ro")))
                for alt in attributes.get("altTitles") or []
            ]
            tags = []
            for tag in attributes.get("tags") or []:
                name = _text(tag["attributes"]["name"].get("en"))
                if name:
                    tags.append(name)

            return SeriesMetadata(
                series_id=data["id"],
                title=_text((attributes.get("title") or {}).get("en")),
                alt_titles=alt_titles,
                description=_text((attributes.get("description") or {}).get("en")),
                demographic=_text(attributes.get("publicationDemographic")),
                status=_text(attributes.get("status")),
                tags=tags,
                last_volume=_text(attributes.get("lastVolume")),
                last_chapter=_text(attributes.get("lastChapter")),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise DecodeError(f"Malformed series metadata from {url}: {e!r}") from e

    def fetch_feed_page(
        self, series_id: str, offset: int, limit: int = 50, since: Optional[datetime] = None
    ) -> FeedPage:
        """Retrieve one page of a series feed.

        Args:
            series_id: Series identifier
            offset: Index of the first chapter to return
            limit: Page size
            since: Only chapters published at or after this local time; None for all

        Returns:
            Decoded feed page
        """
        url = f"{self.api_base}/manga/{series_id}/feed"
        params = [
            ("translatedLanguage[]", self.language),
            ("includeExternalUrl", "0"),
            ("offset", str(offset)),
            ("limit", str(limit)),
        ]
        if since is not None:
            params.append(("publishAtSince", since.strftime(SINCE_FORMAT)))

        payload = self._get_json(url, params=params)

        try:
            items = [
                FeedItem(
                    chapter_id=entry["id"],
                    title=_text(entry["attributes"].get("title")),
                    volume=_text(entry["attributes"].get("volume")),
                    chapter=_text(entry["attributes"].get("chapter")),
                )
                for entry in payload["data"]
            ]
            page = FeedPage(
                items=items,
                offset=int(payload["offset"]),
                limit=int(payload["limit"]),
                total=int(payload["total"]),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Malformed feed page from {url}: {e!r}") from e

        logger.debug("Feed %s offset=%d: %d items of %d", series_id, offset, len(items), page.total)
        return page

    def fetch_chapter_delivery(self, chapter_id: str) -> ChapterDelivery:
        """Resolve the image delivery node and page list for a chapter."""
        url = f"{self.api_base}/at-home/server/{chapter_id}"
        payload = self._get_json(url)

        try:
            chapter = payload["chapter"]
            return ChapterDelivery(
                base_url=payload["baseUrl"].rstrip("/"),
                chapter_hash=chapter["hash"],
                page_filenames=[str(name) for name in chapter["data"]],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise DecodeError(f"Malformed delivery metadata from {url}: {e!r}") from e

    def fetch_page_bytes(self, page_url: str) -> Iterator[bytes]:
        """Stream one page image.

        The status is checked before this returns; transport errors while
        reading the body surface as NetworkError from the iterator.
        """
        response = self._get(page_url, stream=True)
        return self._iter_body(response, page_url)

    @staticmethod
    def _iter_body(response: requests.Response, page_url: str) -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            raise NetworkError(f"Failed to read {page_url}: {e}") from e
        finally:
            response.close()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
