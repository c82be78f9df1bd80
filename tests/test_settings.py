"""
Test cases for configuration loading and validation.
"""

from pathlib import Path

import pytest

from config.settings import Config, PreloadConfig


class TestConfig:
    """Test cases for Config."""

    def test_defaults(self):
        config = Config()

        assert config.preload.max_concurrent == 3
        assert config.preload.max_retries == 2
        assert config.preload.retry_base_delay == 1.0
        assert config.preload.initial_batch_size == 5
        assert config.playback.sample_rate is None
        config.validate()

    def test_yaml_round_trip(self, tmp_path):
        config = Config()
        config.preload.max_concurrent = 6
        config.playback.output_device = "pulse"
        config.logging.log_file = Path("logs/audio.log")

        path = tmp_path / "nested" / "config.yaml"
        config.to_yaml(path)
        loaded = Config.from_yaml(path)

        assert loaded.preload.max_concurrent == 6
        assert loaded.playback.output_device == "pulse"
        assert loaded.logging.log_file == Path("logs/audio.log")

    def test_partial_yaml_keeps_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("preload:\n  max_retries: 4\n")

        loaded = Config.from_yaml(path)

        assert loaded.preload.max_retries == 4
        assert loaded.preload.max_concurrent == 3
        assert loaded.playback.mixer_frequency == 44100

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('PHOMSHAH_MAX_CONCURRENT', '5')
        monkeypatch.setenv('PHOMSHAH_MAX_RETRIES', '0')
        monkeypatch.setenv('PHOMSHAH_READY_TIMEOUT', '2.5')
        monkeypatch.setenv('PHOMSHAH_DEBUG', 'true')
        monkeypatch.setenv('AUDIO_SAMPLE_RATE', '48000')
        monkeypatch.setenv('LOG_LEVEL', 'DEBUG')

        config = Config.from_env()

        assert config.preload.max_concurrent == 5
        assert config.preload.max_retries == 0
        assert config.preload.ready_timeout == 2.5
        assert config.preload.debug is True
        assert config.playback.sample_rate == 48000
        assert config.logging.log_level == 'DEBUG'

    @pytest.mark.parametrize("preload, message", [
        (PreloadConfig(max_concurrent=0), "max_concurrent"),
        (PreloadConfig(max_retries=-1), "max_retries"),
        (PreloadConfig(initial_batch_size=0), "initial_batch_size"),
        (PreloadConfig(ready_timeout=0), "ready_timeout"),
    ])
    def test_validate_rejects_bad_preload(self, preload, message):
        config = Config(preload=preload)

        with pytest.raises(ValueError, match=message):
            config.validate()

    def test_validate_rejects_bad_log_level(self):
        config = Config()
        config.logging.log_level = "LOUD"

        with pytest.raises(ValueError, match="Invalid log level"):
            config.validate()
