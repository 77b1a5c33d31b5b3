"""
Application configuration manager.
Stores settings in a JSON file under ~/.sona and provides the API key.
"""

import json
import logging
import os
from pathlib import Path

from sona.core import constants
from sona.core.constants import (
    API_KEY_ENV, DEFAULT_OUTPUT_ROOT, DEFAULT_SPEECH_MODEL,
    POLL_INTERVAL_SEC, MAX_POLL_ATTEMPTS,
)

# Validation bounds
_POLL_INTERVAL_MIN = 0
_POLL_INTERVAL_MAX = 60
_POLL_ATTEMPTS_MIN = 1
_POLL_ATTEMPTS_MAX = 10000

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'api_key': "",
    'output_root': str(DEFAULT_OUTPUT_ROOT),
    'speech_model': DEFAULT_SPEECH_MODEL,
    'poll_interval_sec': POLL_INTERVAL_SEC,
    'max_poll_attempts': MAX_POLL_ATTEMPTS,
    'convert_local': True,
    'cookies_path': "",
}

KNOWN_KEYS = tuple(_DEFAULTS)


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        self.path = Path(config_path) if config_path else constants.CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    saved = json.load(f)
                if isinstance(saved, dict):
                    # Hand-edited files go through the same checks as `config set`
                    for key, value in saved.items():
                        self._data[key] = self._validate(key, value) if key in KNOWN_KEYS else value
                else:
                    logger.warning("Ignoring config file %s: not a JSON object", self.path)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Failed to load config: %s", e)

    def save(self):
        """Persist config to disk, readable by the owner only (it may hold the API key)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2)
        try:
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.warning("Could not restrict permissions on %s: %s", self.path, e)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        if key not in KNOWN_KEYS:
            raise KeyError(f"Unknown config key: {key}")
        value = self._validate(key, value)
        self._data[key] = value
        self.save()

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key == 'poll_interval_sec':
            try:
                value = float(value)
            except (TypeError, ValueError):
                logger.warning("Invalid poll_interval_sec %r, using default", value)
                return POLL_INTERVAL_SEC
            return max(_POLL_INTERVAL_MIN, min(_POLL_INTERVAL_MAX, value))

        if key == 'max_poll_attempts':
            try:
                value = int(value)
            except (TypeError, ValueError):
                logger.warning("Invalid max_poll_attempts %r, using default", value)
                return MAX_POLL_ATTEMPTS
            return max(_POLL_ATTEMPTS_MIN, min(_POLL_ATTEMPTS_MAX, value))

        if key == 'convert_local':
            if isinstance(value, str):
                return value.strip().lower() in ('1', 'true', 'yes', 'on')
            return bool(value)

        if key in ('output_root', 'cookies_path', 'api_key', 'speech_model'):
            return str(value).strip()

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def output_root(self) -> Path:
        return Path(self._data.get('output_root') or DEFAULT_OUTPUT_ROOT).expanduser()

    @property
    def speech_model(self) -> str:
        return self._data.get('speech_model') or DEFAULT_SPEECH_MODEL

    @property
    def poll_interval(self) -> float:
        return float(self._data.get('poll_interval_sec', POLL_INTERVAL_SEC))

    @property
    def max_poll_attempts(self) -> int:
        return int(self._data.get('max_poll_attempts', MAX_POLL_ATTEMPTS))

    @property
    def convert_local(self) -> bool:
        return bool(self._data.get('convert_local', True))

    @property
    def cookies_path(self) -> Path | None:
        raw = self._data.get('cookies_path')
        return Path(raw).expanduser() if raw else None

    def last_session(self) -> dict:
        """Choices from the previous `sona interactive` run, used as prompt defaults."""
        saved = self._data.get('last_session')
        return dict(saved) if isinstance(saved, dict) else {}

    def save_last_session(self, source_type: str, speech_model: str, output_path: str):
        self._data['last_session'] = {
            'source_type': source_type,
            'speech_model': speech_model,
            'output_path': output_path,
        }
        self.save()

    def get_api_key(self) -> str | None:
        """The environment variable wins over the stored key."""
        return os.environ.get(API_KEY_ENV) or self._data.get('api_key') or None
