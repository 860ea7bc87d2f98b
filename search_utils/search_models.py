from pydantic import BaseModel
from typing import List, Optional


class SearchResult(BaseModel):
    """Model representing a single web search result"""
    title: str
    url: str


class ImageResult(SearchResult):
    """Model representing a single image search result"""
    image: str = ""
    thumbnail: str = ""
    height: int = 0
    width: int = 0
    source: str = ""


class VideoResult(SearchResult):
    """Model representing a single video search result"""
    description: str = ""
    embed_url: str = ""
    thumbnail: str = ""
    duration: str = ""
    published: str = ""
    publisher: str = ""
    uploader: str = ""


class AnswerResult(BaseModel):
    """Model representing an instant answer abstract"""
    abstract: str
    abstract_source: Optional[str] = None
    abstract_url: Optional[str] = None


class WebSearchResponse(BaseModel):
    q: str
    results: List[SearchResult]


class AnswerResponse(BaseModel):
    q: str
    answer: Optional[AnswerResult] = None
    related: List[SearchResult] = []


class ImageSearchResponse(BaseModel):
    q: str
    vqd: str
    results: List[ImageResult]


class VideoSearchResponse(BaseModel):
    q: str
    vqd: str
    results: List[VideoResult]


class HealthResponse(BaseModel):
    """Model for the health check endpoint"""
    message: str
    version: str
    status: str
