"""
Current weather from OpenWeatherMap
"""
import aiohttp
import asyncio
from typing import Dict, Any, Optional
from core.config import settings as default_settings, Settings
from core.logger import setup_logger

logger = setup_logger(__name__)

class WeatherService:
    """OpenWeatherMap client that never raises to its caller"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.api_key = self.settings.WEATHER_API_KEY
        self.api_url = self.settings.WEATHER_API_URL
        self.timeout = self.settings.WEATHER_TIMEOUT

    def fallback(self, location: str) -> Dict[str, Any]:
        """Clearly labelled placeholder used whenever the lookup fails"""
        return {
            "temperature": 22,
            "description": "Weather data unavailable",
            "humidity": 65,
            "windSpeed": 10,
            "location": location,
        }

    async def _fetch(self, location: str) -> Dict[str, Any]:
        params = {"q": location, "appid": self.api_key or "demo_key", "units": "metric"}
        async with aiohttp.ClientSession() as session:
            async with session.get(
                self.api_url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status != 200:
                    raise RuntimeError(f"Weather API error: {response.status}")
                return await response.json()

    async def get_weather(self, location: Optional[str] = None) -> Dict[str, Any]:
        """
        Current conditions for a location

        Returns:
            Dict with temperature (°C), description, humidity (%),
            windSpeed (km/h) and location name
        """
        location = location or self.settings.WEATHER_DEFAULT_LOCATION
        logger.info(f"Weather lookup: {location}")
        try:
            data = await self._fetch(location)
            return {
                "temperature": round(data["main"]["temp"]),
                "description": data["weather"][0]["description"],
                "humidity": data["main"]["humidity"],
                "windSpeed": round(data["wind"]["speed"] * 3.6),  # m/s -> km/h
                "location": data.get("name") or location,
            }
        except asyncio.TimeoutError:
            logger.error(f"Weather API timeout for {location}")
        except (aiohttp.ClientError, RuntimeError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Weather API error for {location}: {e}")
        return self.fallback(location)
