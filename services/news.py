"""
Headlines and news search via NewsAPI, with sample articles when no key is set
"""
import aiohttp
import asyncio
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from core.config import settings as default_settings, Settings
from core.logger import setup_logger

logger = setup_logger(__name__)

class NewsError(Exception):
    """NewsAPI request failed"""

class NewsService:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.api_key = self.settings.NEWS_API_KEY
        self.base_url = self.settings.NEWS_API_URL
        self.timeout = self.settings.NEWS_TIMEOUT

    def _sample_headlines(self) -> Dict[str, Any]:
        published = datetime.now(timezone.utc).isoformat()
        articles = [
            {
                "title": "Technology Advances in AI Voice Assistants",
                "description": "Latest developments in artificial intelligence are revolutionizing how we interact with voice assistants.",
                "url": "#",
                "source": "Tech News",
                "publishedAt": published,
                "category": "technology",
            },
            {
                "title": "Weather Patterns Show Unusual Changes",
                "description": "Meteorologists report interesting weather patterns emerging across various regions.",
                "url": "#",
                "source": "Weather Central",
                "publishedAt": published,
                "category": "weather",
            },
            {
                "title": "Global Economy Shows Positive Trends",
                "description": "Economic indicators suggest positive growth trends in multiple sectors.",
                "url": "#",
                "source": "Economic Times",
                "publishedAt": published,
                "category": "business",
            },
        ]
        return {"articles": articles, "totalResults": len(articles), "status": "ok"}

    def _sample_search(self, query: str) -> Dict[str, Any]:
        return {
            "articles": [{
                "title": f"Latest updates on {query}",
                "description": f"Recent developments and news related to {query}.",
                "url": "#",
                "source": "News Search",
                "publishedAt": datetime.now(timezone.utc).isoformat(),
                "category": "search",
            }],
            "totalResults": 1,
            "status": "ok",
        }

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{self.base_url}/{path}",
                    params={**params, "apiKey": self.api_key},
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:
                    if response.status != 200:
                        raise NewsError(f"News API error: {response.status}")
                    return await response.json()
        except asyncio.TimeoutError as e:
            raise NewsError("News API timed out") from e
        except aiohttp.ClientError as e:
            raise NewsError(f"News API request failed: {e}") from e

    @staticmethod
    def _articles(data: Dict[str, Any], category: str) -> Dict[str, Any]:
        articles: List[Dict[str, Any]] = [
            {
                "title": article.get("title"),
                "description": article.get("description") or "",
                "url": article.get("url"),
                "source": (article.get("source") or {}).get("name"),
                "publishedAt": article.get("publishedAt"),
                "category": category,
            }
            for article in data.get("articles", [])
        ]
        return {
            "articles": articles,
            "totalResults": data.get("totalResults", len(articles)),
            "status": data.get("status", "ok"),
        }

    async def get_top_headlines(
        self,
        category: str = "general",
        country: Optional[str] = None,
        page_size: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Top headlines for a category

        Raises:
            NewsError: remote request failed
        """
        if not self.api_key:
            logger.debug("No NEWS_API_KEY configured, returning sample headlines")
            return self._sample_headlines()

        data = await self._get("top-headlines", {
            "country": country or self.settings.NEWS_DEFAULT_COUNTRY,
            "category": category,
            "pageSize": page_size or self.settings.NEWS_PAGE_SIZE,
        })
        logger.info(f"Fetched {len(data.get('articles', []))} {category} headlines")
        return self._articles(data, category)

    async def search_news(self, query: str, page_size: Optional[int] = None) -> Dict[str, Any]:
        if not self.api_key:
            return self._sample_search(query)

        data = await self._get("everything", {
            "q": query,
            "pageSize": page_size or self.settings.NEWS_PAGE_SIZE,
            "sortBy": "publishedAt",
        })
        return self._articles(data, "search")
