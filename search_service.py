from typing import Any, Dict, List, Optional
import logging
import os
import httpx
from dotenv import load_dotenv

from search_utils.extractors import (
    extract_bing_results,
    extract_duckduckgo_results,
    extract_google_results,
    extract_image_results,
    extract_instant_answer,
    extract_video_results,
    extract_vqd,
)
from search_utils.search_models import (
    AnswerResponse,
    ImageSearchResponse,
    VideoSearchResponse,
    WebSearchResponse,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DUCKDUCKGO_HTML_URL = "https://duckduckgo.com/html/"
DUCKDUCKGO_HOME_URL = "https://duckduckgo.com/"
DUCKDUCKGO_ANSWERS_URL = "https://api.duckduckgo.com/"
DUCKDUCKGO_IMAGES_URL = "https://duckduckgo.com/i.js"
DUCKDUCKGO_VIDEOS_URL = "https://duckduckgo.com/v.js"
GOOGLE_SEARCH_URL = "https://www.google.com/search"
BING_SEARCH_URL = "https://www.bing.com/search"

DESKTOP_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
CHROME_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_USER_AGENT = CHROME_USER_AGENT + " Edg/120.0.0.0"

# Google and Bing block requests that do not look like a navigating browser
BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}


class SearchError(Exception):
    """Base class for errors rendered as JSON responses"""
    status_code = 500

    def __init__(self, error: str, q: Optional[str] = None, message: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.q = q
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        if self.q is not None:
            body["q"] = self.q
        return body


class ValidationError(SearchError):
    """Missing or invalid query parameter"""
    status_code = 400


class InvalidTypeError(ValidationError):
    def __init__(self, allowed_types: List[str]):
        super().__init__("Invalid type parameter")
        self.allowed_types = allowed_types

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "allowed_types": self.allowed_types}


class UpstreamError(SearchError):
    """Search engine answered with an error or could not be reached"""
    status_code = 502


class InternalError(SearchError):
    """Unexpected failure while handling a request"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__("Internal error", message=message)


class SearchService:
    """Service for querying DuckDuckGo, Google and Bing"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = float(os.getenv("SEARCH_TIMEOUT", "15.0"))
        self.region = os.getenv("SEARCH_REGION", "us-en")
        self.default_engine = os.getenv("DEFAULT_ENGINE", "duckduckgo")
        self.transport = transport

        # Available web search engines
        self.engines = {
            "duckduckgo": self.search_duckduckgo,
            "google": self.search_google,
            "bing": self.search_bing,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport)

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Dict[str, Any],
        headers: Dict[str, str],
        q: str,
        kind: str,
    ) -> httpx.Response:
        logger.debug(f"GET {url} for {kind} query: {q}")
        try:
            response = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch {kind} for '{q}': {e}")
            raise UpstreamError(f"Failed to fetch {kind}", q=q, message=str(e)) from e

        if not response.is_success:
            logger.warning(f"{url} returned HTTP {response.status_code} for '{q}'")
            raise UpstreamError(f"HTTP error: {response.status_code}", q=q)
        return response

    @staticmethod
    def _json(response: httpx.Response, q: str, kind: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Failed to fetch {kind}", q=q, message=str(e)) from e
        if not isinstance(data, dict):
            raise UpstreamError(
                f"Failed to fetch {kind}", q=q, message="Unexpected response payload")
        return data

    def get_engine(self, name: Optional[str]):
        """Return the search coroutine for an engine name, falling back to the default"""
        key = (name or self.default_engine).strip().lower()
        return self.engines.get(key) or self.engines.get(self.default_engine, self.search_duckduckgo)

    async def search(self, q: str, max_results: int, engine: Optional[str] = None) -> WebSearchResponse:
        """Run a web search on the requested engine"""
        results = await self.get_engine(engine)(q, max_results)
        return WebSearchResponse(q=q, results=results)

    async def search_duckduckgo(self, q: str, max_results: int) -> List[Dict[str, str]]:
        async with self._client() as client:
            response = await self._get(
                client, DUCKDUCKGO_HTML_URL, {"q": q},
                {"User-Agent": DESKTOP_USER_AGENT}, q, "results")
        return extract_duckduckgo_results(response.text, max_results)

    async def search_google(self, q: str, max_results: int) -> List[Dict[str, str]]:
        headers = {"User-Agent": CHROME_USER_AGENT, **BROWSER_HEADERS}
        async with self._client() as client:
            response = await self._get(
                client, GOOGLE_SEARCH_URL, {"q": q, "num": max_results, "hl": "en"},
                headers, q, "results")
        return extract_google_results(response.text, max_results)

    async def search_bing(self, q: str, max_results: int) -> List[Dict[str, str]]:
        headers = {"User-Agent": EDGE_USER_AGENT, **BROWSER_HEADERS}
        async with self._client() as client:
            response = await self._get(
                client, BING_SEARCH_URL, {"q": q, "count": max_results},
                headers, q, "results")
        return extract_bing_results(response.text, max_results)

    async def search_answers(self, q: str) -> AnswerResponse:
        """Query the DuckDuckGo Instant Answer API"""
        params = {"q": q, "format": "json", "no_html": 1, "skip_disambig": 1}
        async with self._client() as client:
            response = await self._get(
                client, DUCKDUCKGO_ANSWERS_URL, params,
                {"User-Agent": "Mozilla/5.0 (compatible; search-proxy)"}, q, "answers")

        answer, related = extract_instant_answer(self._json(response, q, "answers"))
        return AnswerResponse(q=q, answer=answer, related=related)

    async def get_vqd(self, client: httpx.AsyncClient, q: str) -> str:
        """Fetch the per-query vqd token required by the image and video APIs"""
        try:
            response = await client.get(
                DUCKDUCKGO_HOME_URL, params={"q": q},
                headers={"User-Agent": DESKTOP_USER_AGENT})
            vqd = extract_vqd(response.text)
        except httpx.HTTPError as e:
            logger.warning(f"Error getting vqd for '{q}': {e}")
            vqd = None

        if not vqd:
            raise UpstreamError("Failed to get vqd token", q=q)
        return vqd

    async def _search_media(self, url: str, q: str, kind: str):
        async with self._client() as client:
            vqd = await self.get_vqd(client, q)
            params = {"q": q, "vqd": vqd, "l": self.region, "p": 1, "s": 0}
            headers = {"User-Agent": DESKTOP_USER_AGENT, "Referer": DUCKDUCKGO_HOME_URL}
            response = await self._get(client, url, params, headers, q, kind)
        return vqd, self._json(response, q, kind)

    async def search_images(self, q: str, max_results: int) -> ImageSearchResponse:
        vqd, data = await self._search_media(DUCKDUCKGO_IMAGES_URL, q, "images")
        return ImageSearchResponse(q=q, vqd=vqd, results=extract_image_results(data, max_results))

    async def search_videos(self, q: str, max_results: int) -> VideoSearchResponse:
        vqd, data = await self._search_media(DUCKDUCKGO_VIDEOS_URL, q, "videos")
        return VideoSearchResponse(q=q, vqd=vqd, results=extract_video_results(data, max_results))


# Create a singleton instance
search_service = SearchService()


def get_search_service() -> SearchService:
    return search_service
