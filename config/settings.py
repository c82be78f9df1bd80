"""
Configuration settings for the audio preloading engine.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml
import os


@dataclass
class PreloadConfig:
    """Download queue and retry configuration."""

    max_concurrent: int = 3
    max_retries: int = 2
    retry_base_delay: float = 1.0  # Seconds, doubled on each retry
    initial_batch_size: int = 5  # URLs loaded before the rest of a batch
    ready_timeout: float = 15.0  # Fallback handle readiness timeout in seconds
    http_timeout: float = 30.0
    debug: bool = False


@dataclass
class PlaybackConfig:
    """Output device configuration."""

    # Decoded buffer playback (sounddevice)
    sample_rate: Optional[int] = None  # Device default if None
    output_device: Optional[str] = None

    # Fallback handle playback (pygame.mixer)
    mixer_frequency: int = 44100
    mixer_channels: int = 2
    mixer_buffer: int = 512


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_to_console: bool = True
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class Config:
    """Main configuration class."""

    preload: PreloadConfig = field(default_factory=PreloadConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance
        """
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        if 'preload' in data:
            config.preload = PreloadConfig(**data['preload'])

        if 'playback' in data:
            config.playback = PlaybackConfig(**data['playback'])

        if 'logging' in data:
            logging_data = data['logging'].copy()
            if 'log_file' in logging_data and logging_data['log_file']:
                logging_data['log_file'] = Path(logging_data['log_file'])
            config.logging = LoggingConfig(**logging_data)

        return config

    def to_yaml(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save YAML configuration file
        """
        data = {
            'preload': self.preload.__dict__,
            'playback': self.playback.__dict__,
            'logging': {k: str(v) if isinstance(v, Path) else v
                       for k, v in self.logging.__dict__.items()}
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables.

        Returns:
            Config instance with values from environment
        """
        config = cls()

        max_concurrent = os.getenv('PHOMSHAH_MAX_CONCURRENT')
        if max_concurrent:
            config.preload.max_concurrent = int(max_concurrent)

        max_retries = os.getenv('PHOMSHAH_MAX_RETRIES')
        if max_retries:
            config.preload.max_retries = int(max_retries)

        ready_timeout = os.getenv('PHOMSHAH_READY_TIMEOUT')
        if ready_timeout:
            config.preload.ready_timeout = float(ready_timeout)

        debug = os.getenv('PHOMSHAH_DEBUG')
        if debug:
            config.preload.debug = debug.lower() == 'true'

        audio_sr = os.getenv('AUDIO_SAMPLE_RATE')
        if audio_sr:
            config.playback.sample_rate = int(audio_sr)

        output_device = os.getenv('AUDIO_OUTPUT_DEVICE')
        if output_device:
            config.playback.output_device = output_device

        log_level = os.getenv('LOG_LEVEL')
        if log_level:
            config.logging.log_level = log_level

        return config

    def validate(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.preload.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        if self.preload.max_retries < 0:
            raise ValueError("max_retries cannot be negative")

        if self.preload.retry_base_delay < 0:
            raise ValueError("retry_base_delay cannot be negative")

        if self.preload.initial_batch_size < 1:
            raise ValueError("initial_batch_size must be at least 1")

        if self.preload.ready_timeout <= 0:
            raise ValueError("ready_timeout must be positive")

        if self.preload.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")

        if self.playback.sample_rate is not None and self.playback.sample_rate <= 0:
            raise ValueError("Sample rate must be positive")

        if self.playback.mixer_channels not in (1, 2):
            raise ValueError("mixer_channels must be 1 or 2")

        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.log_level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.logging.log_level}. Must be one of {valid_levels}")


# Default configuration instance
default_config = Config()
