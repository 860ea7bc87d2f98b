import json
from pathlib import Path
from typing import Callable, Dict, List, Tuple

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from search_service import SearchService, get_search_service

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

VQD_PAGE = '<html><script>DDG.deep.initialize("/d.js?q=openai&vqd="4-123456789012345678901234567890");</script></html>'

ANSWERS_PAYLOAD = {
    "AbstractText": "OpenAI is an American artificial intelligence research organization.",
    "AbstractSource": "Wikipedia",
    "AbstractURL": "https://en.wikipedia.org/wiki/OpenAI",
    "RelatedTopics": [
        {"Text": "ChatGPT - A chatbot", "FirstURL": "https://duckduckgo.com/ChatGPT"},
        {
            "Name": "People",
            "Topics": [
                {"Text": "Sam Altman", "FirstURL": "https://duckduckgo.com/Sam_Altman"},
                {"Text": "Ilya Sutskever", "FirstURL": "https://duckduckgo.com/Ilya_Sutskever"},
            ],
        },
        {"Text": "GPT-4", "FirstURL": "https://duckduckgo.com/GPT-4"},
    ],
}

IMAGES_PAYLOAD = {
    "results": [
        {
            "title": "OpenAI logo",
            "url": "https://duckduckgo.com/l/?uddg=https%3A%2F%2Fopenai.com%2Fbrand",
            "image": "https://openai.com/logo.png",
            "thumbnail": "https://tse1.mm.bing.net/th?id=1",
            "height": 600,
            "width": 800,
            "source": "Bing",
        },
        {
            "title": "OpenAI office",
            "url": "https://example.com/office",
            "image": "https://example.com/office.jpg",
            "thumbnail": "https://tse1.mm.bing.net/th?id=2",
            "height": 1080,
            "width": 1920,
            "source": "Bing",
        },
        {"title": "Bare entry"},
    ]
}

VIDEOS_PAYLOAD = {
    "results": [
        {
            "title": "OpenAI DevDay keynote",
            "description": "Opening keynote",
            "content": "https://www.youtube.com/watch?v=U9mJuUkhUzk",
            "embed_url": "https://www.youtube.com/embed/U9mJuUkhUzk?autoplay=1",
            "images": {"large": "https://i.ytimg.com/large.jpg", "medium": "https://i.ytimg.com/medium.jpg"},
            "duration": "45:36",
            "published": "2023-11-06T18:00:00.0000000",
            "publisher": "YouTube",
            "uploader": "OpenAI",
        },
        {
            "title": "GPT-4 demo",
            "content": "https://duckduckgo.com/l/?uddg=https%3A%2F%2Fvimeo.com%2F123",
            "images": {"small": "https://i.vimeocdn.com/small.jpg"},
        },
    ]
}


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeEngines:
    """Routes outbound requests to canned engine responses and records them"""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.overrides: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def override(self, host: str, path: str, handler: Callable[[httpx.Request], httpx.Response]):
        self.overrides[(host, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.url.host, request.url.path)
        if key in self.overrides:
            return self.overrides[key](request)

        if key == ("duckduckgo.com", "/html/"):
            return httpx.Response(200, text=load_fixture("duckduckgo_results.html"))
        if key == ("www.google.com", "/search"):
            return httpx.Response(200, text=load_fixture("google_results.html"))
        if key == ("www.bing.com", "/search"):
            return httpx.Response(200, text=load_fixture("bing_results.html"))
        if key == ("api.duckduckgo.com", "/"):
            return httpx.Response(200, json=ANSWERS_PAYLOAD)
        if key == ("duckduckgo.com", "/"):
            return httpx.Response(200, text=VQD_PAGE)
        if key == ("duckduckgo.com", "/i.js"):
            return httpx.Response(200, json=IMAGES_PAYLOAD)
        if key == ("duckduckgo.com", "/v.js"):
            return httpx.Response(200, json=VIDEOS_PAYLOAD)
        return httpx.Response(404, text="not found")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def engines():
    return FakeEngines()


@pytest.fixture
def service(engines):
    return SearchService(transport=httpx.MockTransport(engines))


@pytest.fixture
def client(service):
    app.dependency_overrides[get_search_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
