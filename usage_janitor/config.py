"""Configuration management for Usage Janitor.

Loads environment variables (and a .env file when present) and provides
centralized config access.
"""
import os
from pathlib import Path
from typing import FrozenSet, Optional, Tuple

from dotenv import load_dotenv

from usage_janitor.analyzer.scanner import (
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_MAX_CACHE_CHARS,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_WORKERS,
)

__version__ = "1.0.0"


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(',') if item.strip())


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Optional[str | Path] = None):
        """Initialize config by loading a .env file.

        Args:
            env_file: Explicit .env path (default: .env in the working directory)
        """
        load_dotenv(env_file or Path.cwd() / ".env")

        # Fail early on malformed numbers rather than mid-run
        self._validate()

    def _validate(self):
        """Read every numeric setting once.

        Raises:
            ValueError: If a numeric variable is not an integer
        """
        _ = (self.max_workers, self.usage_threshold, self.max_file_size, self.max_cache_chars)

    @staticmethod
    def _get_int(name: str, default: int) -> int:
        raw = os.getenv(name)
        if raw is None or raw.strip() == '':
            return default
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{name} must be an integer, got {raw!r}") from None

    @property
    def excluded_dirs(self) -> FrozenSet[str]:
        """Directory names pruned from every scan.

        Returns:
            JANITOR_EXCLUDED_DIRS when set, the built-in set otherwise
        """
        raw = os.getenv("JANITOR_EXCLUDED_DIRS")
        if raw is None:
            return DEFAULT_EXCLUDED_DIRS
        return frozenset(_split_list(raw))

    @property
    def exclude_paths(self) -> Tuple[str, ...]:
        """Glob patterns on relative paths skipped during scans."""
        return _split_list(os.getenv("JANITOR_EXCLUDE_PATHS", ""))

    @property
    def max_workers(self) -> int:
        """Thread pool size used for per-file matching."""
        value = self._get_int("JANITOR_MAX_WORKERS", DEFAULT_MAX_WORKERS)
        if value < 1:
            raise ValueError(f"JANITOR_MAX_WORKERS must be at least 1, got {value}")
        return value

    @property
    def usage_threshold(self) -> int:
        """Score at or below which an entity with no occurrences is unused."""
        return self._get_int("JANITOR_USAGE_THRESHOLD", 0)

    @property
    def max_file_size(self) -> int:
        """Files larger than this many bytes are skipped."""
        return self._get_int("JANITOR_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE)

    @property
    def max_cache_chars(self) -> int:
        """Characters of file text a scanner keeps in memory between entities."""
        return self._get_int("JANITOR_MAX_CACHE_CHARS", DEFAULT_MAX_CACHE_CHARS)

    @property
    def exclude_self(self) -> bool:
        """Whether an entity's defining file is left out of its own scan."""
        return os.getenv("JANITOR_EXCLUDE_SELF", "true").strip().lower() not in ('0', 'false', 'no', 'off')


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached singleton so the next get_config() rereads the environment."""
    global _config
    _config = None
