"""
LexFlow - Case Law Research Service
Searches published court opinions via the CourtListener REST API (v4).

Used by the analysis client as the model's `search_case_law` tool. The
service never raises: every failure is logged and becomes an empty result,
so a broken research backend degrades an analysis instead of failing it.
"""

import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from lexflow.core.config import Settings, get_settings

from .models import CaseSearchResult, SearchResponse

logger = logging.getLogger(__name__)

COURTLISTENER_SITE = "https://www.courtlistener.com"

# Court codes CourtListener accepts as a `court` filter
FEDERAL_COURTS = frozenset(
    ["scotus", "cadc", "cafc"] + [f"ca{n}" for n in range(1, 12)]
)

_CIRCUIT_ORDINALS = [
    "first", "second", "third", "fourth", "fifth", "sixth",
    "seventh", "eighth", "ninth", "tenth", "eleventh",
]

_STATES = {
    "al": "alabama", "ak": "alaska", "az": "arizona", "ar": "arkansas",
    "ca": "california", "co": "colorado", "ct": "connecticut", "de": "delaware",
    "fl": "florida", "ga": "georgia", "hi": "hawaii", "id": "idaho",
    "il": "illinois", "in": "indiana", "ia": "iowa", "ks": "kansas",
    "ky": "kentucky", "la": "louisiana", "me": "maine", "md": "maryland",
    "ma": "massachusetts", "mi": "michigan", "mn": "minnesota", "ms": "mississippi",
    "mo": "missouri", "mt": "montana", "ne": "nebraska", "nv": "nevada",
    "nh": "new_hampshire", "nj": "new_jersey", "nm": "new_mexico", "ny": "new_york",
    "nc": "north_carolina", "nd": "north_dakota", "oh": "ohio", "ok": "oklahoma",
    "or": "oregon", "pa": "pennsylvania", "ri": "rhode_island", "sc": "south_carolina",
    "sd": "south_dakota", "tn": "tennessee", "tx": "texas", "ut": "utah",
    "vt": "vermont", "va": "virginia", "wa": "washington", "wv": "west_virginia",
    "wi": "wisconsin", "wy": "wyoming", "dc": "dc",
}


def _build_jurisdiction_map() -> Dict[str, str]:
    mapping = {
        "supreme_court": "scotus",
        "scotus": "scotus",
        "dc_circuit": "cadc",
        "federal_circuit": "cafc",
        "federal": "federal",
        "state": "state",
    }
    for number, ordinal in enumerate(_CIRCUIT_ORDINALS, start=1):
        mapping[f"{ordinal}_circuit"] = f"ca{number}"
    for abbreviation, state in _STATES.items():
        mapping[state] = state
        mapping[abbreviation] = state
    return mapping


JURISDICTION_MAP = _build_jurisdiction_map()


def map_jurisdiction(jurisdiction: str) -> str:
    """Resolve a jurisdiction alias to a CourtListener court code or state token."""
    key = jurisdiction.strip().lower()
    return JURISDICTION_MAP.get(key, jurisdiction)


def court_filter_for(jurisdiction: Optional[str]) -> Optional[str]:
    """
    Court filter for a jurisdiction, or None.

    Only federal court codes are applied. States are left to the query
    text, which returns far more results than a single-court filter.
    """
    if not jurisdiction:
        return None
    court = map_jurisdiction(jurisdiction)
    return court if court in FEDERAL_COURTS else None


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def transform_result(item: Dict[str, Any]) -> CaseSearchResult:
    """Normalize one CourtListener search hit. Odd field types are coerced to text."""
    opinions = item.get("opinions")
    snippet = ""
    if isinstance(opinions, list) and opinions and isinstance(opinions[0], dict) and opinions[0].get("snippet"):
        snippet = _text(opinions[0]["snippet"])[:300]
    elif item.get("snippet"):
        snippet = _text(item["snippet"])

    citation = item.get("citation")
    if isinstance(citation, list):
        citation = ", ".join(str(c) for c in citation if c)
    citation = _text(citation) if citation else "No citation available"

    absolute_url = _text(item.get("absolute_url"))
    if absolute_url and not absolute_url.startswith("http"):
        absolute_url = f"{COURTLISTENER_SITE}{absolute_url}"

    jurisdiction = item.get("court_jurisdiction")
    docket_number = item.get("docketNumber")
    return CaseSearchResult(
        case_name=_text(item.get("caseName")) or "Unknown Case",
        citation=citation,
        court=_text(item.get("court") or item.get("court_id")) or "Unknown Court",
        date=_text(item.get("dateFiled")) or "Unknown Date",
        snippet=_collapse(snippet),
        url=absolute_url,
        jurisdiction=_text(jurisdiction) if jurisdiction is not None else None,
        docket_number=_text(docket_number) if docket_number is not None else None,
    )


def format_results_for_ai(response: SearchResponse) -> str:
    """Render search results as the markdown block handed back to the model."""
    if not response.results:
        return (
            f'No relevant case law found for query: "{response.search_query}"\n\n'
            "Suggestion: Try broadening your search terms or removing date/jurisdiction filters."
        )

    lines = [
        "**Case Law Research Results**",
        "",
        f'Found {response.count} total cases matching "{response.search_query}"',
        f"Showing top {len(response.results)} most relevant:",
        "",
        "---",
        "",
    ]
    for index, case in enumerate(response.results, start=1):
        lines.append(f"### {index}. {case.case_name}")
        lines.append(f"**Citation:** {case.citation}")
        lines.append(f"**Court:** {case.court}")
        lines.append(f"**Date Filed:** {case.date}")
        if case.docket_number:
            lines.append(f"**Docket Number:** {case.docket_number}")
        if case.snippet:
            lines.append("")
            lines.append(f"**Excerpt:**\n> {case.snippet}...")
        if case.url:
            lines.append("")
            lines.append(f"**Full Opinion:** {case.url}")
        lines.extend(["", "---", ""])

    lines.append("*Source: CourtListener (Free Law Project)*")
    lines.append(
        "*Note: Verify all citations and review full opinions before relying on them in legal work.*"
    )
    return "\n".join(lines)


# Gemini function declaration advertised when a query requires research
CASE_LAW_SEARCH_TOOL: Dict[str, Any] = {
    "name": "search_case_law",
    "description": (
        "Search for relevant case law and court opinions using CourtListener. "
        "Use this when you need specific case precedents, court decisions, or "
        "legal citations to support the analysis."
    ),
    "parametersJsonSchema": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query describing the legal issue, e.g. 'breach of contract damages'",
            },
            "jurisdiction": {
                "type": "string",
                "description": "Court or jurisdiction, e.g. 'ninth_circuit', 'supreme_court', 'california'",
            },
            "start_date": {
                "type": "string",
                "description": "Only opinions filed on or after this date (YYYY-MM-DD)",
            },
            "end_date": {
                "type": "string",
                "description": "Only opinions filed on or before this date (YYYY-MM-DD)",
            },
            "limit": {
                "type": "integer",
                "description": "Maximum number of results to return (default 5, max 20)",
            },
        },
        "required": ["query"],
    },
}


class CaseLawService:
    """
    CourtListener opinion search.

    Requires a CourtListener API token. Without one every search returns
    an empty result and logs a warning.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://www.courtlistener.com/api/rest/v4",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CaseLawService":
        settings = settings or get_settings()
        return cls(
            api_key=settings.courtlistener_api_key,
            base_url=settings.courtlistener_base_url,
            timeout=settings.courtlistener_timeout,
        )

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self.api_key}",
            "Accept": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def search_case_law(
        self,
        query: str,
        jurisdiction: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 5,
    ) -> SearchResponse:
        """Search opinions. Returns an empty response on any failure."""
        if not self.is_available:
            logger.warning("CourtListener API key not configured; case law search skipped")
            return SearchResponse.empty(query)

        params: Dict[str, Any] = {
            "q": query,
            "type": "o",
            "page_size": limit,
            "order_by": "score desc",
        }
        court = court_filter_for(jurisdiction)
        if court:
            params["court"] = court
        if start_date:
            params["filed_after"] = start_date
        if end_date:
            params["filed_before"] = end_date

        logger.info(f"🔍 CourtListener search: {query!r} (court={court or 'any'})")
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/search/", params=params, headers=self._headers()
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"CourtListener search failed for {query!r}: {e}")
            return SearchResponse.empty(query)

        if not isinstance(data, dict):
            logger.error(f"CourtListener returned unexpected payload for {query!r}")
            return SearchResponse.empty(query)

        hits = data.get("results")
        if not isinstance(hits, list):
            hits = []
        results: List[CaseSearchResult] = [transform_result(item) for item in hits if isinstance(item, dict)]
        count = data.get("count")
        if not isinstance(count, int) or not count:
            count = len(results)
        return SearchResponse(results=results, count=count, search_query=query)

    async def test_connection(self) -> bool:
        """Cheap authenticated probe of the search endpoint."""
        if not self.is_available:
            return False
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/search/",
                    params={"q": "test", "type": "o", "page_size": 1},
                    headers=self._headers(),
                )
            return response.is_success
        except httpx.HTTPError as e:
            logger.error(f"CourtListener connection test failed: {e}")
            return False
