"""Tests for TTS provider fallback, temp file management and the sweep task."""

import asyncio
import os
import time

import pytest

from core.registry import ProviderNotFoundError
from services.tts import (
    AllProvidersFailedError,
    GoogleCloudTTSProvider,
    OpenAITTSProvider,
    TTSOptions,
    TTSProviderNotConfiguredError,
)
from tests.conftest import FakeTTSProvider, make_tts


def _files(directory):
    return sorted(directory.iterdir()) if directory.exists() else []


class TestSynthesizeToFile:
    @pytest.mark.asyncio
    async def test_primary_success_writes_one_file(self, settings):
        primary = FakeTTSProvider("primary")
        backup = FakeTTSProvider("backup")
        tts = make_tts(settings, primary, backup, default="primary")

        path = await tts.synthesize_to_file("Hello there")

        assert path.read_bytes() == b"ID3fake-mp3"
        assert path.name.startswith("tts_") and path.suffix == ".mp3"
        assert tts.temp_files == [path]
        assert primary.calls == ["Hello there"]
        assert backup.calls == []

    @pytest.mark.asyncio
    async def test_falls_back_after_primary_failure(self, settings):
        primary = FakeTTSProvider("primary", fail=True)
        backup = FakeTTSProvider("backup", audio=b"backup-audio")
        tts = make_tts(settings, primary, backup)

        path = await tts.synthesize_to_file("Hello", provider="primary")

        assert path.read_bytes() == b"backup-audio"
        assert _files(settings.UPLOADS_PATH) == [path]
        assert tts.temp_files == [path]
        assert len(primary.calls) == 1

    @pytest.mark.asyncio
    async def test_requested_provider_not_retried_in_fallback(self, settings):
        first = FakeTTSProvider("first", fail=True)
        second = FakeTTSProvider("second", fail=True)
        tts = make_tts(settings, first, second)

        with pytest.raises(AllProvidersFailedError):
            await tts.synthesize_to_file("Hi", provider="second")

        assert len(second.calls) == 1
        assert len(first.calls) == 1

    @pytest.mark.asyncio
    async def test_all_fail_leaves_no_files(self, settings):
        tts = make_tts(
            settings,
            FakeTTSProvider("a", fail=True),
            FakeTTSProvider("b", fail=True),
            FakeTTSProvider("c", fail=True),
        )

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await tts.synthesize_to_file("Hi", provider="a")

        assert set(exc_info.value.errors) == {"a", "b", "c"}
        assert _files(settings.UPLOADS_PATH) == []
        assert tts.temp_files == []

    @pytest.mark.asyncio
    async def test_empty_audio_counts_as_failure(self, settings):
        silent = FakeTTSProvider("silent", audio=b"")
        backup = FakeTTSProvider("backup")
        tts = make_tts(settings, silent, backup)

        path = await tts.synthesize_to_file("Hi", provider="silent")

        assert path.read_bytes() == b"ID3fake-mp3"
        assert len(tts.temp_files) == 1

    @pytest.mark.asyncio
    async def test_unknown_provider_falls_through_to_fallbacks(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        path = await tts.synthesize_to_file("Hi", provider="does-not-exist")
        assert path.exists()

    @pytest.mark.asyncio
    async def test_output_directory_created(self, settings):
        assert not settings.UPLOADS_PATH.exists()
        tts = make_tts(settings, FakeTTSProvider("only"))
        await tts.synthesize_to_file("Hi", provider="only")
        assert settings.UPLOADS_PATH.is_dir()


class TestCleanup:
    @pytest.mark.asyncio
    async def test_sweep_removes_only_old_files(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        old = await tts.synthesize_to_file("old", provider="only")
        fresh = await tts.synthesize_to_file("fresh", provider="only")
        two_days_ago = time.time() - 2 * 24 * 60 * 60
        os.utime(old, (two_days_ago, two_days_ago))

        removed = tts.cleanup_temp_files()

        assert removed == 1
        assert not old.exists()
        assert fresh.exists()
        assert tts.temp_files == [fresh]

    @pytest.mark.asyncio
    async def test_sweep_drops_vanished_files(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        path = await tts.synthesize_to_file("gone", provider="only")
        path.unlink()

        assert tts.cleanup_temp_files() == 0
        assert tts.temp_files == []

    @pytest.mark.asyncio
    async def test_cleanup_removes_everything(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        paths = [await tts.synthesize_to_file(f"n{i}", provider="only") for i in range(3)]

        tts.cleanup()

        assert all(not p.exists() for p in paths)
        assert tts.temp_files == []

    @pytest.mark.asyncio
    async def test_remove_file_untracks(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        path = await tts.synthesize_to_file("bye", provider="only")
        assert tts.owns(path)

        tts.remove_file(path)

        assert not path.exists()
        assert not tts.owns(path)

    @pytest.mark.asyncio
    async def test_start_and_stop_sweep_task(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        tts.start()
        task = tts._cleanup_task
        assert task is not None and not task.done()

        await tts.stop()

        assert task.cancelled()
        assert tts._cleanup_task is None

    @pytest.mark.asyncio
    async def test_sweep_loop_runs_on_interval(self, settings):
        tts = make_tts(settings, FakeTTSProvider("only"))
        tts.cleanup_interval = 0.01
        tts.max_file_age = -1
        path = await tts.synthesize_to_file("x", provider="only")

        tts.start()
        for _ in range(100):
            if not path.exists():
                break
            await asyncio.sleep(0.01)
        await tts.stop()

        assert not path.exists()


class TestProvidersAndVoices:
    def test_available_providers_in_registration_order(self, settings):
        tts = make_tts(settings, FakeTTSProvider("x"), FakeTTSProvider("y"))
        assert tts.get_available_providers() == ["x", "y"]

    def test_voices_for_one_provider(self, settings):
        tts = make_tts(settings, FakeTTSProvider("x"))
        assert tts.get_available_voices("x") == {"x": ["test-voice"]}

    def test_voices_for_unknown_provider(self, settings):
        tts = make_tts(settings, FakeTTSProvider("x"))
        with pytest.raises(ProviderNotFoundError):
            tts.get_available_voices("nope")

    def test_set_default_provider_rejects_unknown(self, settings):
        tts = make_tts(settings, FakeTTSProvider("x"))
        with pytest.raises(ProviderNotFoundError):
            tts.set_default_provider("nope")

    def test_default_registry_has_keyless_fallbacks(self, settings):
        from services.tts import TTSService

        tts = TTSService(settings=settings)
        assert tts.get_available_providers() == ["openai", "elevenlabs", "google", "edge", "gtts"]
        assert tts.fallback_order == ["openai", "elevenlabs", "google", "edge", "gtts"]


class TestHostedProviders:
    @pytest.mark.asyncio
    async def test_openai_without_key_not_configured(self):
        provider = OpenAITTSProvider(api_key="")
        with pytest.raises(TTSProviderNotConfiguredError):
            await provider.synthesize("Hi", TTSOptions())

    def test_unknown_voice_coerced_to_default(self):
        provider = OpenAITTSProvider(api_key="k")
        assert provider.resolve_voice("robot") == "nova"
        assert provider.resolve_voice("echo") == "echo"

    @pytest.mark.asyncio
    async def test_google_without_key_not_configured(self):
        provider = GoogleCloudTTSProvider(api_key="")
        with pytest.raises(TTSProviderNotConfiguredError):
            await provider.synthesize("Hi", TTSOptions(language="xx-XX"))

    def test_options_from_dict_ignores_unknown_keys(self):
        options = TTSOptions.from_dict({"voice": "echo", "speed": 1.5, "volume": 11})
        assert options.voice == "echo"
        assert options.speed == 1.5
