"""
Configuration - where the backend lives and where local state is kept.

Loaded from YAML (or JSON) with dataclass defaults for anything missing.
Environment variables override the file:
- PLACEBOOK_API_URL: backend base URL (including /api)
- PLACEBOOK_TIMEOUT: request timeout in seconds
- PLACEBOOK_DATA_DIR: directory for local storage files
"""

import copy
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .cache import SNAPSHOT_KEY, LocalCache
from .identity import USER_ID_KEY, IdentityProvider
from .remote import DEFAULT_API_URL, RemoteStoreClient
from .repository import DEFAULT_NEARBY_DISTANCE_M, ArtRepository
from .storage import open_store

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("sqlite", "json", "memory")
DEFAULT_DATA_DIR = Path.home() / ".placebook"


@dataclass
class RemoteConfig:
    """Backend connection."""
    api_url: str = DEFAULT_API_URL
    timeout: float = 10.0  # seconds, total per request

    def validate(self) -> Tuple[bool, Optional[str]]:
        if not isinstance(self.api_url, str) or not self.api_url.startswith(("http://", "https://")):
            return False, "api_url must be an http(s) URL"
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            return False, "timeout must be positive"
        return True, None


@dataclass
class StorageConfig:
    """Local durable storage."""
    backend: str = "sqlite"
    path: str = str(DEFAULT_DATA_DIR / "placebook.db")  # db file, or directory for "json"
    snapshot_key: str = SNAPSHOT_KEY
    user_id_key: str = USER_ID_KEY

    def validate(self) -> Tuple[bool, Optional[str]]:
        if self.backend not in STORAGE_BACKENDS:
            return False, f"backend must be one of {', '.join(STORAGE_BACKENDS)}"
        if self.backend != "memory" and not self.path:
            return False, "path is required for persistent backends"
        if not self.snapshot_key or not self.user_id_key:
            return False, "storage keys must be non-empty"
        if self.snapshot_key == self.user_id_key:
            return False, "snapshot_key and user_id_key must differ"
        return True, None


@dataclass
class NearbyConfig:
    """Defaults for nearby queries."""
    default_distance_meters: float = DEFAULT_NEARBY_DISTANCE_M
    include_private: bool = True

    def validate(self) -> Tuple[bool, Optional[str]]:
        if not isinstance(self.default_distance_meters, (int, float)) or self.default_distance_meters <= 0:
            return False, "default_distance_meters must be positive"
        return True, None


@dataclass
class ServerConfig:
    """Reference backend."""
    host: str = "0.0.0.0"
    port: int = 3000
    data_file: str = "flowers.json"

    def validate(self) -> Tuple[bool, Optional[str]]:
        if not isinstance(self.port, int) or not (0 < self.port < 65536):
            return False, "port must be 1-65535"
        if not self.data_file:
            return False, "data_file is required"
        return True, None


@dataclass
class PlacebookConfig:
    """Complete configuration."""
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    nearby: NearbyConfig = field(default_factory=NearbyConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PlacebookConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"config must be a mapping, got {type(data).__name__}")
        return cls(
            remote=RemoteConfig(**data.get("remote", {})),
            storage=StorageConfig(**data.get("storage", {})),
            nearby=NearbyConfig(**data.get("nearby", {})),
            server=ServerConfig(**data.get("server", {})),
        )

    def validate(self) -> Tuple[bool, Optional[str]]:
        for name in ("remote", "storage", "nearby", "server"):
            valid, error = getattr(self, name).validate()
            if not valid:
                return False, f"{name}: {error}"
        return True, None


def apply_env_overrides(config: PlacebookConfig, environ: Optional[Dict[str, str]] = None) -> PlacebookConfig:
    """Apply PLACEBOOK_* environment variables in place and return config."""
    env = os.environ if environ is None else environ
    if env.get("PLACEBOOK_API_URL"):
        config.remote.api_url = env["PLACEBOOK_API_URL"]
    if env.get("PLACEBOOK_TIMEOUT"):
        try:
            config.remote.timeout = float(env["PLACEBOOK_TIMEOUT"])
        except ValueError:
            logger.warning("Ignoring non-numeric PLACEBOOK_TIMEOUT=%r", env["PLACEBOOK_TIMEOUT"])
    if env.get("PLACEBOOK_DATA_DIR"):
        data_dir = Path(env["PLACEBOOK_DATA_DIR"])
        config.storage.path = str(data_dir if config.storage.backend == "json" else data_dir / "placebook.db")
    return config


class ConfigManager:
    """Loads and saves configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: Path to config file (default: placebook.yaml in current dir)
        """
        if config_path is None:
            config_path = Path("placebook.yaml")
        self.config_path = Path(config_path)
        self._config: Optional[PlacebookConfig] = None

    def _is_yaml(self) -> bool:
        return self.config_path.suffix in (".yaml", ".yml")

    def load(self, force_reload: bool = False) -> PlacebookConfig:
        """Load configuration from file or return defaults, then apply env overrides."""
        if self._config is not None and not force_reload:
            return self._config

        config = PlacebookConfig()
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = yaml.safe_load(f) if self._is_yaml() else json.load(f)
                config = PlacebookConfig.from_dict(data)
                valid, error = config.validate()
                if not valid:
                    logger.warning("Invalid config in %s, using defaults: %s", self.config_path, error)
                    config = PlacebookConfig()
            except Exception as e:
                logger.warning("Error loading config %s, using defaults: %s", self.config_path, e)
                config = PlacebookConfig()

        overridden = apply_env_overrides(copy.deepcopy(config))
        valid, error = overridden.validate()
        if valid:
            config = overridden
        else:
            logger.warning("Ignoring environment overrides, result is invalid: %s", error)
        self._config = config
        return self._config

    def save(self, config: Optional[PlacebookConfig] = None) -> bool:
        """Validate and write config. Returns True on success."""
        if config is None:
            config = self._config or self.load()

        valid, error = config.validate()
        if not valid:
            logger.error("Cannot save invalid config: %s", error)
            return False

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                if self._is_yaml():
                    yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(config.to_dict(), f, indent=2)
        except OSError as e:
            logger.error("Error saving config: %s", e)
            return False
        self._config = config
        return True

    def reload(self) -> PlacebookConfig:
        self._config = None
        return self.load()


def build_repository(config: Optional[PlacebookConfig] = None) -> ArtRepository:
    """Wire an ArtRepository from configuration (one per session)."""
    if config is None:
        config = PlacebookConfig()
    store = open_store(config.storage.backend, config.storage.path)
    return ArtRepository(
        identity=IdentityProvider(store, key=config.storage.user_id_key),
        cache=LocalCache(store, key=config.storage.snapshot_key),
        remote=RemoteStoreClient(config.remote.api_url, timeout=config.remote.timeout),
    )
