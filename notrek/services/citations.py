# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Citation allow-listing, ranking and multi-provider search.

Every citation that leaves this service has passed filter_allowed: its URL
hostname (minus a leading ``www.``) equals an allow-listed domain or ends with
``.`` plus one. Lookup failures never propagate; each provider failure is
logged and contributes an empty list.
"""

import asyncio
import logging
from collections.abc import Iterable
from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from notrek.config import Settings
from notrek.models.citation import Citation
from notrek.services.llm import LLMService

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_DOMAINS: tuple[str, ...] = (
    "nih.gov",
    "medlineplus.gov",
    "cdc.gov",
    "who.int",
    "nice.org.uk",
    "mayoclinic.org",
    "aafp.org",
    "cochranelibrary.com",
)

DOMAIN_WEIGHTS: tuple[tuple[str, float], ...] = (
    ("medlineplus.gov", 9.0),
    ("nih.gov", 8.5),
    ("cdc.gov", 8.2),
    ("who.int", 7.9),
    ("nice.org.uk", 7.7),
    ("mayoclinic.org", 7.4),
    ("aafp.org", 7.2),
    ("cochranelibrary.com", 7.1),
)
DEFAULT_DOMAIN_WEIGHT = 5.0

MAX_CITATIONS = 6
ENOUGH_CANDIDATES = 4


def domain_of(url: str | None) -> str:
    """Return the URL's hostname without a leading ``www.``, or "" if unparseable."""
    try:
        host = urlsplit(str(url or "")).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


def host_matches(host: str, allowed: Iterable[str]) -> bool:
    for domain in allowed:
        d = domain.lower().strip().removeprefix("www.")
        if d and (host == d or host.endswith(f".{d}")):
            return True
    return False


def is_allowed(url: str | None, allowed: Iterable[str]) -> bool:
    host = domain_of(url)
    return bool(host) and host_matches(host, allowed)


def filter_allowed(citations: Iterable[Citation], allowed: Iterable[str]) -> list[Citation]:
    """Keep allow-listed citations, deduplicated by URL in first-seen order."""
    allowed = list(allowed)
    seen: set[str] = set()
    out = []
    for c in citations:
        if not c.url or c.url in seen or not is_allowed(c.url, allowed):
            continue
        seen.add(c.url)
        out.append(c)
    return out


def domain_weight(host: str) -> float:
    for domain, weight in DOMAIN_WEIGHTS:
        if host == domain or host.endswith(f".{domain}"):
            return weight
    return DEFAULT_DOMAIN_WEIGHT


def rank_citations(citations: Iterable[Citation], limit: int = MAX_CITATIONS) -> list[Citation]:
    """Order citations by domain priority (stable) and keep the top ``limit``."""
    ranked = sorted(citations, key=lambda c: domain_weight(domain_of(c.url)), reverse=True)
    return ranked[:limit]


def resolve_allowed_domains(allowed: list[str] | None) -> list[str]:
    cleaned = [d.strip() for d in (allowed or []) if isinstance(d, str) and d.strip()]
    return cleaned or list(DEFAULT_ALLOWED_DOMAINS)


class _CitationList(BaseModel):
    """Decode schema for the LLM fallback provider."""

    model_config = ConfigDict(extra="ignore")

    citations: list[dict] = Field(default_factory=list)
    items: list[dict] = Field(default_factory=list)
    results: list[dict] = Field(default_factory=list)

    @field_validator("citations", "items", "results", mode="before")
    @classmethod
    def keep_object_items(cls, v):
        if not isinstance(v, list):
            return []
        return [c for c in v if isinstance(c, dict)]

    @property
    def entries(self) -> list[dict]:
        return self.citations or self.items or self.results


def _citation(title, url) -> Citation | None:
    if not url:
        return None
    return Citation(title=title or "", url=url, source=domain_of(url) or None)


class CitationService:
    """Finds citations for free text from allow-listed medical domains.

    Providers are tried in order (Tavily, Bing, Google CSE, LLM fallback) and
    skipped when unconfigured. Accumulation stops once enough candidates are
    gathered; the result is filtered, optionally link-checked, ranked and
    truncated.
    """

    def __init__(self, settings: Settings, http: httpx.AsyncClient, llm: LLMService | None = None):
        self.settings = settings
        self.http = http
        self.llm = llm

    def provider_status(self) -> dict[str, bool]:
        s = self.settings
        return {
            "tavily": bool(s.TAVILY_API_KEY),
            "bing": bool(s.BING_SEARCH_V7_SUBSCRIPTION_KEY),
            "googleCSE": bool(s.GOOGLE_API_KEY and s.GOOGLE_CSE_ID),
            "openaiFallback": bool(s.openai_api_key),
        }

    async def find(self, text: str, allowed_domains: list[str] | None = None) -> list[Citation]:
        """Return up to six ranked, allow-listed citations for ``text``.

        Never raises: a provider that fails contributes nothing and the failure
        is logged.
        """
        query = (text or "").strip()
        if not query:
            return []
        allowed = resolve_allowed_domains(allowed_domains)

        providers = [
            ("tavily", self._search_tavily),
            ("bing", self._search_bing),
            ("google_cse", self._search_google_cse),
            ("llm", self._search_llm),
        ]
        candidates: list[Citation] = []
        for name, provider in providers:
            try:
                found = await provider(query, allowed)
            except Exception as e:
                logger.warning(
                    "Citation provider failed, continuing without its results",
                    extra={"provider": name, "error_type": type(e).__name__, "error": str(e)},
                )
                found = []
            candidates.extend(filter_allowed(found, allowed))
            if len(candidates) >= ENOUGH_CANDIDATES:
                break

        citations = filter_allowed(candidates, allowed)
        if self.settings.CITATION_LINK_CHECK_ENABLED and citations:
            checks = await asyncio.gather(*(self.link_ok(c.url) for c in citations))
            citations = [c for c, ok in zip(citations, checks, strict=True) if ok]

        result = rank_citations(citations)
        logger.info(
            "Citation lookup completed",
            extra={"candidates": len(candidates), "returned": len(result)},
        )
        return result

    async def link_ok(self, url: str) -> bool:
        """Check that a URL resolves. Some sites reject HEAD, so 403/405 retry with GET."""
        try:
            r = await self.http.head(url, follow_redirects=True)
            if r.is_success:
                return True
            if r.status_code in (403, 405):
                r = await self.http.get(url, follow_redirects=True)
                return r.is_success
            return False
        except httpx.HTTPError as e:
            logger.info("Citation link check failed", extra={"url": url, "error": str(e)})
            return False

    async def _search_tavily(self, query: str, allowed: list[str]) -> list[Citation]:
        key = self.settings.TAVILY_API_KEY
        if not key:
            return []
        r = await self.http.post(
            "https://api.tavily.com/search",
            json={
                "api_key": key,
                "query": query,
                "include_domains": allowed,
                "search_depth": "basic",
                "max_results": 8,
            },
        )
        if not r.is_success:
            return []
        items = r.json().get("results") or []
        return [c for c in (_citation(it.get("title"), it.get("url")) for it in items) if c]

    async def _search_bing(self, query: str, allowed: list[str]) -> list[Citation]:
        key = self.settings.BING_SEARCH_V7_SUBSCRIPTION_KEY
        if not key:
            return []
        r = await self.http.get(
            "https://api.bing.microsoft.com/v7.0/search",
            params={"q": query, "count": 10, "responseFilter": "Webpages"},
            headers={"Ocp-Apim-Subscription-Key": key},
        )
        if not r.is_success:
            return []
        items = (r.json().get("webPages") or {}).get("value") or []
        return [c for c in (_citation(v.get("name"), v.get("url")) for v in items) if c]

    async def _search_google_cse(self, query: str, allowed: list[str]) -> list[Citation]:
        key, cx = self.settings.GOOGLE_API_KEY, self.settings.GOOGLE_CSE_ID
        if not key or not cx:
            return []
        r = await self.http.get(
            "https://www.googleapis.com/customsearch/v1",
            params={"key": key, "cx": cx, "num": 10, "q": query},
        )
        if not r.is_success:
            return []
        items = r.json().get("items") or []
        return [c for c in (_citation(it.get("title"), it.get("link")) for it in items) if c]

    async def _search_llm(self, query: str, allowed: list[str]) -> list[Citation]:
        if self.llm is None:
            return []
        system = (
            "Return 3-6 citations as JSON ONLY with keys: title, url, source.\n"
            "Rules:\n"
            f"- URLs must be real pages from these domains ONLY: {', '.join(allowed)}.\n"
            "- Prefer patient-facing guidance or evidence summaries.\n"
            "- No homepages; pick the most specific page.\n"
            "- If unsure, do not invent links."
        )
        reply = await self.llm.complete_json(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": f'Provide citations for: "{query}"'},
            ],
            _CitationList,
            model=self.settings.cite_model,
            temperature=0.2,
        )
        out = []
        for entry in reply.entries:
            url = entry.get("url")
            if not url:
                continue
            out.append(
                Citation(
                    title=entry.get("title") or "",
                    url=url,
                    source=entry.get("source") or domain_of(url) or None,
                )
            )
        return out
