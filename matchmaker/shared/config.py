"""
Centralized environment configuration.

Values are layered, later sources overriding earlier ones:
1) `env.example` (committed, safe placeholders)
2) `env.local` (optional, MUST NOT be committed)
3) System environment variables (highest priority)

Components never read this object directly; `matchmaker.app_config` assembles
an immutable settings model from it once at startup.
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from loguru import logger


class EnvironConfig:
    """
    Singleton configuration class that loads environment variables from env files
    and the system environment, providing dictionary-like access with default values.
    """

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(EnvironConfig, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._config = {}
            self._load_config()
            EnvironConfig._initialized = True

    def _load_config(self):
        root = Path(__file__).parent.parent.parent

        example_path = root / "env.example"
        if example_path.exists():
            self._config.update(dotenv_values(example_path))
            logger.info("Loaded environment variables from {}", example_path)

        local_path = root / "env.local"
        if local_path.exists():
            self._config.update(dotenv_values(local_path))
            logger.info("Loaded and overrode environment variables from {}", local_path)

        self._config.update(os.environ)

    def __getitem__(self, key):
        if key not in self._config:
            raise KeyError(f"Configuration key '{key}' not found")

        return self._config[key]

    def get(self, key, default=None):
        return self._config.get(key, default)

    def __contains__(self, key):
        return key in self._config

    def __iter__(self):
        return iter(self._config)

    def items(self):
        return self._config.items()

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self.get(key)
        if raw is None or str(raw).strip() == "":
            return default
        return str(raw).strip().lower() in {"true", "1", "yes", "on"}

    def get_int(self, key: str, default: int, minimum: int | None = None) -> int:
        """
        Get an integer value, falling back to the default on junk input.

        Args:
            key: Configuration key
            default: Value used when the key is missing or not an integer
            minimum: Optional lower bound; smaller values fall back to the default

        Returns:
            int: Parsed value or default
        """
        raw = self.get(key)
        if raw is None or str(raw).strip() == "":
            return default
        try:
            value = int(str(raw).strip())
        except (ValueError, TypeError):
            logger.warning("Invalid {} value '{}', defaulting to {}", key, raw, default)
            return default
        if minimum is not None and value < minimum:
            logger.warning("{} value {} is below {}, defaulting to {}", key, value, minimum, default)
            return default
        return value

    def get_mongo_url(self, label: str = "default") -> str:
        """
        Get MongoDB connection URL for a specific label.

        Args:
            label: MongoDB connection label (default: "default")

        Returns:
            str: MongoDB connection URL
        """
        if label == "default":
            return self.get("MONGO_URL_DEFAULT") or self.get("MONGO_URL") or "mongodb://localhost:27017"
        return self.get(f"MONGO_URL_{label.upper()}") or ""

    def get_mongo_max_pool_size(self) -> int:
        size = self.get_int("MONGO_MAX_POOL_SIZE", 5, minimum=1)
        if size > 100:
            logger.warning("MONGO_MAX_POOL_SIZE value {} is out of range (1-100), defaulting to 5", size)
            return 5
        return size

    def get_mongo_server_selection_timeout(self) -> int:
        return self.get_int("MONGO_SERVER_SELECTION_TIMEOUT", 5000, minimum=1)

    def get_mongo_connect_timeout(self) -> int:
        return self.get_int("MONGO_CONNECT_TIMEOUT", 10000, minimum=1)

    def get_mongo_socket_timeout(self) -> int:
        return self.get_int("MONGO_SOCKET_TIMEOUT", 10000, minimum=1)


# Global instance
config = EnvironConfig()
