import os
from pathlib import Path

import yaml

from adops.core.errors import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "settings.yaml"


class Config:
    _config = None

    @classmethod
    def path(cls) -> Path:
        override = os.getenv("ADOPS_CONFIG")
        return Path(override) if override else DEFAULT_CONFIG_PATH

    @classmethod
    def load(cls, path=None):
        if cls._config is None:
            config_path = Path(path) if path else cls.path()
            if not config_path.exists():
                cls._config = {}
                return cls._config
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise ConfigError(f"Malformed settings file: {config_path}", details={"path": str(config_path)}) from exc
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigError(f"Settings root must be a mapping: {config_path}", details={"path": str(config_path)})
            cls._config = loaded or {}
        return cls._config

    @classmethod
    def get(cls, *keys, default=None):
        cfg = cls.load()
        for key in keys:
            if not isinstance(cfg, dict):
                return default
            cfg = cfg.get(key)
        return cfg if cfg is not None else default

    @classmethod
    def reset(cls, values=None):
        """Drop the cached settings; ``values`` replaces them outright."""
        cls._config = values
