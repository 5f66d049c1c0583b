"""
Illustration lookup against free image-search providers.

Providers are tried in a fixed order (Openverse, then Wikimedia Commons) for
every candidate query. A provider failure only means "no result"; when nothing
is found a placehold.co URL is returned so the viewer always has an image.
"""
import logging
import re
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence
from urllib.parse import quote
import httpx
from .models import IllustrationReference

logger = logging.getLogger(__name__)

OPENVERSE_URL = "https://api.openverse.org/v1/images/"
WIKIMEDIA_URL = "https://commons.wikimedia.org/w/api.php"
PLACEHOLDER_HOST = "https://placehold.co"

Provider = Callable[[str], Awaitable[Optional[IllustrationReference]]]

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")

def _encode(text: str) -> str:
    # Same character set as JavaScript's encodeURIComponent
    return quote(text, safe="-_.!~*'()")

def placeholder_url(text: str) -> str:
    label = _encode((text or "Image")[:40])
    return f"{PLACEHOLDER_HOST}/800x500?text={label}"

def is_placeholder(url: str) -> bool:
    return url.startswith(PLACEHOLDER_HOST)

def proxied_url(base: Optional[str], src: str) -> str:
    if not base or is_placeholder(src):
        return src
    return f"{base.rstrip('/')}/api/image-proxy?src={_encode(src)}"

def clean_query(text: str) -> str:
    return _SPACE_RE.sub(" ", text or "").strip()

def candidate_queries(terms: Iterable[str]) -> List[str]:
    uniq = list(dict.fromkeys(t for t in (clean_query(term) for term in terms) if t))
    if not uniq:
        return []
    return list(dict.fromkeys([" ".join(uniq), *uniq]))

class IllustrationResolver:
    def __init__(self, http_client: httpx.AsyncClient, providers: Optional[Sequence[Provider]] = None):
        self.http_client = http_client
        self.providers = list(providers) if providers is not None else [
            self.search_openverse,
            self.search_wikimedia,
        ]

    async def search_openverse(self, query: str) -> Optional[IllustrationReference]:
        params = {
            "q": query,
            "page_size": "1",
            "license_type": "commercial",
            "mature": "false",
            "category": "illustration",
        }
        resp = await self.http_client.get(OPENVERSE_URL, params=params, headers={"Accept": "application/json"})
        if not resp.is_success:
            logger.warning(f"Openverse returned {resp.status_code} for '{query}'")
            return None
        results = resp.json().get("results") or []
        if not results:
            return None
        result = results[0]
        raw = result.get("thumbnail") or result.get("url")
        if not raw:
            return None

        title = result.get("title") or ""
        creator = result.get("creator") or ""
        if creator:
            attribution = f"{title} – {creator} (via Openverse)" if title else f"{creator} (via Openverse)"
        else:
            attribution = f"{title or 'Image'} (via Openverse)"
        return IllustrationReference(url=raw, attribution=attribution)

    async def search_wikimedia(self, query: str) -> Optional[IllustrationReference]:
        params = {
            "action": "query",
            "format": "json",
            "origin": "*",
            "generator": "search",
            "gsrlimit": "1",
            "gsrsearch": query,
            "prop": "imageinfo",
            "iiprop": "url|extmetadata",
            "iiurlwidth": "1200",
        }
        resp = await self.http_client.get(WIKIMEDIA_URL, params=params, headers={"Accept": "application/json"})
        if not resp.is_success:
            logger.warning(f"Wikimedia returned {resp.status_code} for '{query}'")
            return None
        pages = (resp.json().get("query") or {}).get("pages")
        if not pages:
            return None
        first_page = next(iter(pages.values()))
        infos = first_page.get("imageinfo") or []
        if not infos:
            return None
        info = infos[0]
        raw = info.get("thumburl") or info.get("url")
        if not raw:
            return None

        meta = info.get("extmetadata") or {}
        artist = _TAG_RE.sub("", (meta.get("Artist") or {}).get("value") or "").strip()
        credit = _TAG_RE.sub("", (meta.get("Credit") or {}).get("value") or "").strip()
        license_short = (meta.get("LicenseShortName") or {}).get("value") or ""
        parts = [artist or credit, f"({license_short})" if license_short else ""]
        attribution = " ".join(p for p in parts if p) or "Wikimedia Commons"
        return IllustrationReference(url=raw, attribution=attribution)

    async def lookup(self, query: str) -> Optional[IllustrationReference]:
        """First result for one query across providers, in order."""
        for provider in self.providers:
            name = getattr(provider, "__name__", repr(provider))
            try:
                found = await provider(query)
            except Exception as e:
                logger.warning(f"Image provider {name} failed for '{query}': {e}")
                continue
            if found and found.url and not is_placeholder(found.url):
                logger.info(f"Image provider {name} matched '{query}'")
                return found
        return None

    async def resolve(self, terms: Iterable[str], fallback_label: str = "") -> IllustrationReference:
        terms = list(terms)
        candidates = candidate_queries(terms)
        for query in candidates:
            found = await self.lookup(query)
            if found:
                return found
        label = fallback_label or next((q for q in map(clean_query, terms) if q), "")
        logger.info(f"No illustration found for {candidates}, using placeholder")
        return IllustrationReference(url=placeholder_url(label))
