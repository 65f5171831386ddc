"""Google search tool - real Custom Search API or simulated results."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from llm_agent.config import CredentialSource
from llm_agent.logging import get_logger
from llm_agent.tools.registry import BaseTool

logger = get_logger("tools.search")

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

SIMULATED_SOURCE = "Simulated Results (add a Google API key and search engine id for real results)"

_NEWS_INDIA = [
    {
        "title": "India News: Latest Breaking News, Live Updates - Times of India",
        "snippet": "Get latest India news, breaking news, current affairs, politics, business, sports, entertainment news from India.",
        "url": "https://timesofindia.indiatimes.com/india",
        "displayLink": "timesofindia.indiatimes.com",
    },
    {
        "title": "India News - Latest Headlines, Photos, Videos | CNN",
        "snippet": "Find the latest India news including politics, economy, technology, and social developments.",
        "url": "https://www.cnn.com/india",
        "displayLink": "cnn.com",
    },
    {
        "title": "India Today: Latest News, Breaking News Headlines",
        "snippet": "India Today brings you the latest news from India and around the world.",
        "url": "https://www.indiatoday.in/",
        "displayLink": "indiatoday.in",
    },
]

_AI = [
    {
        "title": "Artificial Intelligence News - Latest AI Research",
        "snippet": "Stay updated with the latest breakthroughs in artificial intelligence, machine learning, and deep learning.",
        "url": "https://ai.news.com",
        "displayLink": "ai.news.com",
    },
    {
        "title": "AI News Today: Model Releases and Research Updates",
        "snippet": "Latest news on large language models, research labs, and other major developments in AI.",
        "url": "https://www.aitoday.com",
        "displayLink": "aitoday.com",
    },
    {
        "title": "MIT Technology Review - AI Section",
        "snippet": "In-depth coverage of artificial intelligence research, applications, and implications for society.",
        "url": "https://www.technologyreview.com/artificial-intelligence/",
        "displayLink": "technologyreview.com",
    },
]

_TECH = [
    {
        "title": "TechCrunch - Latest Technology News",
        "snippet": "Breaking technology news, analysis, and opinions. Covering startups, venture capital, and innovation.",
        "url": "https://techcrunch.com",
        "displayLink": "techcrunch.com",
    },
    {
        "title": "The Verge - Technology News, Reviews",
        "snippet": "The latest tech news about the world's best hardware, apps, and much more.",
        "url": "https://www.theverge.com",
        "displayLink": "theverge.com",
    },
    {
        "title": "Wired - Technology News and Reviews",
        "snippet": "Get in-depth technology news, reviews, and analysis covering gadgets, science, and digital culture.",
        "url": "https://www.wired.com",
        "displayLink": "wired.com",
    },
]


def _slug(query: str) -> str:
    return "-".join(query.lower().split())


def simulated_results(query: str) -> list[dict[str, str]]:
    """Deterministic stand-in results grouped by a few topic buckets."""
    lowered = query.lower()
    words = set(lowered.split())
    if "news" in lowered and "india" in lowered:
        return [dict(r) for r in _NEWS_INDIA]
    if "ai" in words or "artificial intelligence" in lowered:
        return [dict(r) for r in _AI]
    if "technology" in lowered or "tech" in words:
        return [dict(r) for r in _TECH]
    return [
        {
            "title": f"{query} - Wikipedia",
            "snippet": f"{query} refers to various concepts and entities. Learn about its definition, history, and significance...",
            "url": f"https://en.wikipedia.org/wiki/{quote('_'.join(query.split()))}",
            "displayLink": "wikipedia.org",
        },
        {
            "title": f"{query} - Latest News and Updates",
            "snippet": f"Stay updated with the latest news, developments, and information about {query}...",
            "url": f"https://news.example.com/{_slug(query)}",
            "displayLink": "news.example.com",
        },
        {
            "title": f"Everything About {query}",
            "snippet": f"Comprehensive guide and information about {query}, including overview, applications, and current trends...",
            "url": f"https://guide.example.com/{_slug(query)}",
            "displayLink": "guide.example.com",
        },
    ]


class GoogleSearchTool(BaseTool):
    """Search the web through the Google Custom Search JSON API."""

    def __init__(
        self,
        credentials: CredentialSource | None = None,
        search_engine_id: str | None = None,
        max_results: int = 10,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.credentials = credentials
        self.search_engine_id = search_engine_id
        self.max_results = max(1, min(max_results, 10))  # API caps num at 10
        self.timeout = timeout
        self.http_client = http_client

    @property
    def name(self) -> str:
        return "google_search"

    @property
    def description(self) -> str:
        return "Search Google for information and return snippet results"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to execute",
                },
            },
            "required": ["query"],
        }

    async def execute(self, args: dict[str, Any]) -> dict[str, Any]:
        query = args.get("query", "").strip()
        if not query:
            return {"error": True, "message": "query must not be empty"}

        api_key = self.credentials.get_credential("google_search") if self.credentials else None
        if not api_key or not self.search_engine_id:
            logger.info("Google API key or search engine id missing, using simulated results")
            return self._simulated(query)

        try:
            return await self._search(query, api_key)
        except Exception as e:
            logger.warning("Google search failed: %s", e)
            return {"error": True, "message": f"Google search failed: {e}", "query": query}

    async def _search(self, query: str, api_key: str) -> dict[str, Any]:
        params = {
            "key": api_key,
            "cx": self.search_engine_id,
            "q": query,
            "num": self.max_results,
        }
        if self.http_client is not None:
            resp = await self.http_client.get(SEARCH_URL, params=params, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                resp = await client.get(SEARCH_URL, params=params)

        if resp.status_code >= 400:
            message = resp.reason_phrase
            try:
                message = resp.json().get("error", {}).get("message") or message
            except ValueError:
                pass
            raise RuntimeError(f"Google API error: {message}")

        data = resp.json()
        results = [
            {
                "title": item.get("title", ""),
                "snippet": item.get("snippet", ""),
                "url": item.get("link", ""),
                "displayLink": item.get("displayLink", ""),
            }
            for item in data.get("items", [])
        ]
        return {
            "query": query,
            "results": results,
            "timestamp": _now(),
            "source": "Google Custom Search API",
            "totalResults": data.get("searchInformation", {}).get("totalResults", "0"),
        }

    def _simulated(self, query: str) -> dict[str, Any]:
        results = simulated_results(query)
        return {
            "query": query,
            "results": results,
            "timestamp": _now(),
            "source": SIMULATED_SOURCE,
            "totalResults": str(len(results)),
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
