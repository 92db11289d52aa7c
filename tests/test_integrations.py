"""Tests for the weather, news, music, document and transcription collaborators."""

import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from services.documents import DocumentError, DocumentProcessor
from services.llm import LLMError
from services.music import DEMO_TRACKS, MusicService
from services.news import NewsError, NewsService
from services.stt import TranscriptionUnavailableError, WhisperSTT
from services.weather import WeatherService


class TestWeatherService:
    @pytest.mark.asyncio
    async def test_converts_units(self, settings):
        weather = WeatherService(settings)
        weather._fetch = AsyncMock(return_value={
            "main": {"temp": 9.4, "humidity": 80},
            "weather": [{"description": "light rain"}],
            "wind": {"speed": 10},
            "name": "Dublin",
        })
        result = await weather.get_weather("dublin")
        assert result == {
            "temperature": 9,
            "description": "light rain",
            "humidity": 80,
            "windSpeed": 36,
            "location": "Dublin",
        }

    @pytest.mark.asyncio
    async def test_timeout_returns_fallback(self, settings):
        weather = WeatherService(settings)
        weather._fetch = AsyncMock(side_effect=asyncio.TimeoutError())
        result = await weather.get_weather("Nowhereville")
        assert result == weather.fallback("Nowhereville")

    @pytest.mark.asyncio
    async def test_malformed_payload_returns_fallback(self, settings):
        weather = WeatherService(settings)
        weather._fetch = AsyncMock(return_value={"unexpected": True})
        result = await weather.get_weather("Oslo")
        assert result["description"] == "Weather data unavailable"


class TestNewsService:
    @pytest.mark.asyncio
    async def test_maps_articles(self, settings):
        settings.NEWS_API_KEY = "key"
        news = NewsService(settings)
        news._get = AsyncMock(return_value={
            "status": "ok",
            "totalResults": 1,
            "articles": [{
                "title": "Launch",
                "description": None,
                "url": "https://example.com/launch",
                "source": {"name": "Space Daily"},
                "publishedAt": "2026-01-01T00:00:00Z",
            }],
        })

        result = await news.get_top_headlines("science")

        news._get.assert_awaited_once_with(
            "top-headlines", {"country": "us", "category": "science", "pageSize": 5}
        )
        article = result["articles"][0]
        assert article["source"] == "Space Daily"
        assert article["description"] == ""
        assert article["category"] == "science"

    @pytest.mark.asyncio
    async def test_remote_error_propagates(self, settings):
        settings.NEWS_API_KEY = "key"
        news = NewsService(settings)
        news._get = AsyncMock(side_effect=NewsError("News API error: 500"))
        with pytest.raises(NewsError):
            await news.search_news("rockets")


class TestMusicService:
    @pytest.mark.asyncio
    async def test_matching_title_preferred(self):
        track = await MusicService().lookup_track("gentle piano")
        assert track["title"] == "Gentle Piano"

    @pytest.mark.asyncio
    async def test_unmatched_query_picks_from_catalogue(self):
        track = await MusicService(rng=random.Random(7)).lookup_track("heavy metal")
        assert track in DEMO_TRACKS

    @pytest.mark.asyncio
    async def test_returns_copy(self):
        track = await MusicService().lookup_track("nature")
        track["title"] = "changed"
        assert DEMO_TRACKS[2]["title"] == "Nature Sounds"


class TestDocumentProcessor:
    @pytest.mark.asyncio
    async def test_summary_falls_back_on_prose(self, fake_llm):
        fake_llm.complete.return_value = "This text is about gardening."
        result = await DocumentProcessor(fake_llm).summarize_text("word " * 450, max_length=10)
        assert result["title"] == "Document Summary"
        assert result["summary"] == "This text "
        assert result["wordCount"] == 450
        assert result["readingTime"] == 3

    @pytest.mark.asyncio
    async def test_analysis_clamps_confidence(self, fake_llm):
        fake_llm.complete.return_value = '{"sentiment": "positive", "confidence": 7}'
        result = await DocumentProcessor(fake_llm).analyze_document("great stuff")
        assert result["sentiment"] == "positive"
        assert result["confidence"] == 1.0

    @pytest.mark.asyncio
    async def test_llm_failure_wrapped(self, fake_llm):
        fake_llm.complete.side_effect = LLMError("down")
        with pytest.raises(DocumentError):
            await DocumentProcessor(fake_llm).analyze_document("text")

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, fake_llm):
        with pytest.raises(ValueError):
            await DocumentProcessor(fake_llm).summarize_text("")


class TestWhisperSTT:
    @pytest.mark.asyncio
    async def test_disabled_asks_for_client_side(self, settings, tmp_path):
        stt = WhisperSTT(settings)
        with pytest.raises(TranscriptionUnavailableError):
            await stt.transcribe_file(tmp_path / "clip.webm")

    @pytest.mark.asyncio
    async def test_failure_wrapped(self, settings, tmp_path):
        settings.STT_ENABLED = True
        stt = WhisperSTT(settings)

        def broken(path):
            raise RuntimeError("cannot decode audio")

        stt._transcribe_sync = broken
        with pytest.raises(TranscriptionUnavailableError):
            await stt.transcribe_file(tmp_path / "clip.webm")
