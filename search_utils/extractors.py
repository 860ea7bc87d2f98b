import base64
import html
import re
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

# Engine pages are truncated before scanning
DUCKDUCKGO_HTML_LIMIT = 150000
GOOGLE_HTML_LIMIT = 200000
BING_HTML_LIMIT = 200000

RELATED_TOPICS_LIMIT = 10

_FLAGS = re.IGNORECASE | re.DOTALL
_TAG_RE = re.compile(r"<[^>]+>")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")

DUCKDUCKGO_RESULT_RE = re.compile(
    r'<a[^>]*class="[^"]*result__a[^"]*"[^>]*href="([^"]+)"[^>]*>(.*?)</a>', _FLAGS)

# Ordered newest layout first; later entries cover older or alternate markup
GOOGLE_RESULT_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(
        r'<div class="[^"]*yuRUbf[^"]*"[^>]*>.*?<a href="([^"]+)"[^>]*>.*?<h3[^>]*>(.*?)</h3>', _FLAGS),
    re.compile(
        r'<a[^>]*href="/url\?q=([^"&]+)[^"]*"[^>]*><h3[^>]*>(.*?)</h3>', _FLAGS),
    re.compile(
        r'<a[^>]*href="(https?://[^"]+)"[^>]*><h3[^>]*>(.*?)</h3>', _FLAGS),
    re.compile(
        r'<a[^>]*jsname="[^"]*"[^>]*href="/url\?q=([^"&]+)[^"]*"[^>]*>[^<]*<h3[^>]*>(.*?)</h3>', _FLAGS),
    re.compile(
        r'<a[^>]*href="([^"]+)"[^>]*data-ved="[^"]*"[^>]*><br><div[^>]*><div[^>]*><div[^>]*><h3[^>]*>(.*?)</h3>', _FLAGS),
)

BING_RESULT_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(
        r'<li class="[^"]*b_algo[^"]*"[^>]*>.*?<h2[^>]*>.*?<a href="([^"]+)"[^>]*>(.*?)</a>', _FLAGS),
    re.compile(
        r'<h2[^>]*>.*?<a[^>]*href="([^"]+)"[^>]*>(.*?)</a>.*?</h2>', _FLAGS),
    re.compile(
        r'<div[^>]*class="[^"]*b_title[^"]*"[^>]*>.*?<h2[^>]*>.*?<a href="([^"]+)"[^>]*>(.*?)</a>', _FLAGS),
    re.compile(
        r'<a[^>]*href="([^"]+)"[^>]*><h2[^>]*>(.*?)</h2></a>', _FLAGS),
)

GOOGLE_BLOCKED_URLS = ("google.com/search", "webcache.googleusercontent.com")
BING_BLOCKED_URLS = ("bing.com/search", "microsoft.com/")

_GOOGLE_REDIRECT_RE = re.compile(r"/url\?q=([^&]+)")

VQD_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"""vqd=['"]([^'"]+)['"]"""),
    re.compile(r"""vqd=([^&"']+)"""),
)


def _clean_title(raw: str) -> str:
    return html.unescape(_TAG_RE.sub("", raw)).strip()


def _strict_unquote(value: str) -> str:
    # Raises ValueError on malformed escapes or invalid UTF-8
    if _BAD_ESCAPE_RE.search(value):
        raise ValueError(f"Malformed percent-escape in {value!r}")
    return unquote(value, errors="strict")


def decode_redirect_url(url: str) -> str:
    """Recover the destination of a DuckDuckGo style redirect link.

    Protocol-relative links are treated as https. The ``uddg`` query
    parameter wins, then ``kl``; anything else comes back unchanged, as
    does any string that cannot be parsed or decoded.
    """
    if not url:
        return url
    try:
        target = "https:" + url if url.startswith("//") else url
        params = parse_qs(urlsplit(target).query)
        for key in ("uddg", "kl"):
            values = params.get(key)
            if values and values[0]:
                return _strict_unquote(values[0])
    except ValueError:
        return url
    return url


def decode_bing_click_url(url: str) -> str:
    """Unwrap a Bing ``/ck/a`` click-tracking link to its base64 payload."""
    if "bing.com/ck/a" not in url:
        return url
    try:
        encoded = parse_qs(urlsplit(url).query).get("u", [""])[0]
        if not encoded.startswith(("a1", "a2", "a3")):
            return url
        payload = encoded[2:]
        payload += "=" * (-len(payload) % 4)
        decoded = base64.urlsafe_b64decode(payload).decode("utf-8")
    except ValueError:
        return url
    return decoded if decoded.startswith("http") else url


def _collect_results(
    text: str,
    patterns: Sequence[Pattern],
    limit: int,
    normalize: Callable[[str], Optional[str]],
) -> List[Dict[str, str]]:
    """Run each pattern in turn until ``limit`` unique results are found."""
    results: List[Dict[str, str]] = []
    seen = set()

    for pattern in patterns:
        for match in pattern.finditer(text):
            if len(results) >= limit:
                break
            href, title = match.group(1), _clean_title(match.group(2))
            if not href or not title:
                continue
            try:
                url = normalize(html.unescape(href))
            except ValueError:
                continue
            if url and url not in seen:
                seen.add(url)
                results.append({"title": title, "url": url})
        if len(results) >= limit:
            break

    return results


def _normalize_google_url(url: str) -> Optional[str]:
    if url.startswith("/url?q="):
        redirect = _GOOGLE_REDIRECT_RE.match(url)
        if redirect:
            url = _strict_unquote(redirect.group(1))
    if not url.startswith("http"):
        return None
    url = _strict_unquote(url)
    if any(blocked in url for blocked in GOOGLE_BLOCKED_URLS):
        return None
    return url


def _normalize_bing_url(url: str) -> Optional[str]:
    url = decode_bing_click_url(url)
    if not url.startswith("http"):
        return None
    url = _strict_unquote(url)
    if any(blocked in url for blocked in BING_BLOCKED_URLS):
        return None
    return url


def extract_duckduckgo_results(text: str, limit: int) -> List[Dict[str, str]]:
    """Extract web results from the DuckDuckGo HTML front-end.

    Results keep document order and are not deduplicated.
    """
    results: List[Dict[str, str]] = []
    for match in DUCKDUCKGO_RESULT_RE.finditer(text[:DUCKDUCKGO_HTML_LIMIT]):
        if len(results) >= limit:
            break
        href, title = match.group(1), _clean_title(match.group(2))
        if href and title:
            results.append({
                "title": title,
                "url": decode_redirect_url(html.unescape(href)),
            })
    return results


def extract_google_results(text: str, limit: int) -> List[Dict[str, str]]:
    """Extract web results from a Google results page, skipping Google's own links."""
    return _collect_results(
        text[:GOOGLE_HTML_LIMIT], GOOGLE_RESULT_PATTERNS, limit, _normalize_google_url)


def extract_bing_results(text: str, limit: int) -> List[Dict[str, str]]:
    """Extract web results from a Bing results page, skipping Bing and Microsoft links."""
    return _collect_results(
        text[:BING_HTML_LIMIT], BING_RESULT_PATTERNS, limit, _normalize_bing_url)


def extract_instant_answer(
    data: Dict[str, Any], limit: int = RELATED_TOPICS_LIMIT
) -> Tuple[Optional[Dict[str, Any]], List[Dict[str, str]]]:
    """Map an Instant Answer payload to ``(answer, related)``.

    ``answer`` is None when the payload has no abstract text. Related topics
    are flattened one level deep, in order, up to ``limit`` entries.
    """
    abstract = (data.get("AbstractText") or "").strip()
    answer = None
    if abstract:
        answer = {
            "abstract": abstract,
            "abstract_source": data.get("AbstractSource"),
            "abstract_url": data.get("AbstractURL"),
        }

    related: List[Dict[str, str]] = []
    for topic in data.get("RelatedTopics") or []:
        if len(related) >= limit:
            break
        if not isinstance(topic, dict):
            continue

        if topic.get("Text") and topic.get("FirstURL"):
            related.append({"title": topic["Text"], "url": topic["FirstURL"]})
        elif topic.get("Topics"):
            # Topic groups are expanded a single level
            for sub_topic in topic["Topics"]:
                if len(related) >= limit:
                    break
                if isinstance(sub_topic, dict) and sub_topic.get("Text") and sub_topic.get("FirstURL"):
                    related.append(
                        {"title": sub_topic["Text"], "url": sub_topic["FirstURL"]})

    return answer, related


def extract_image_results(data: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
    results = []
    for item in (data.get("results") or [])[:limit]:
        results.append({
            "title": item.get("title") or "",
            "url": decode_redirect_url(item["url"]) if item.get("url") else "",
            "image": item.get("image") or "",
            "thumbnail": item.get("thumbnail") or "",
            "height": item.get("height") or 0,
            "width": item.get("width") or 0,
            "source": item.get("source") or "",
        })
    return results


def extract_video_results(data: Dict[str, Any], limit: int) -> List[Dict[str, Any]]:
    results = []
    for item in (data.get("results") or [])[:limit]:
        images = item.get("images") or {}
        results.append({
            "title": item.get("title") or "",
            "description": item.get("description") or "",
            "url": decode_redirect_url(item["content"]) if item.get("content") else "",
            "embed_url": decode_redirect_url(item["embed_url"]) if item.get("embed_url") else "",
            "thumbnail": images.get("large") or images.get("medium") or images.get("small") or "",
            "duration": item.get("duration") or "",
            "published": item.get("published") or "",
            "publisher": item.get("publisher") or "",
            "uploader": item.get("uploader") or "",
        })
    return results


def extract_vqd(text: str) -> Optional[str]:
    """Find the vqd token in a DuckDuckGo page, quoted form first."""
    for pattern in VQD_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1)
    return None
