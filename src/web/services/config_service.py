from __future__ import annotations

import os
from typing import Any, Dict, Optional

import yaml


class ConfigService:
    """
    Manages layered config, later layers winning key by key:
    - <config_dir>/default.yaml (checked in)
    - <config_dir>/config.yaml (local overrides)
    - an explicit file, e.g. from --config (treated as overrides)
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = config_dir
        self.default_path = os.path.join(config_dir, "default.yaml")
        self.overrides_path = os.path.join(config_dir, "config.yaml")

    @staticmethod
    def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge override into base and return base."""
        for k, v in (override or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                ConfigService.deep_merge(base[k], v)
            else:
                base[k] = v
        return base

    @staticmethod
    def read_yaml(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            return {}
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
        return data

    def load_effective_config(self, explicit_path: Optional[str] = None) -> Dict[str, Any]:
        merged = self.read_yaml(self.default_path)
        merged = self.deep_merge(merged, self.read_yaml(self.overrides_path))
        if explicit_path and os.path.abspath(explicit_path) not in (
            os.path.abspath(self.default_path),
            os.path.abspath(self.overrides_path),
        ):
            if not os.path.exists(explicit_path):
                raise FileNotFoundError(f"Config file not found: {explicit_path}")
            merged = self.deep_merge(merged, self.read_yaml(explicit_path))
        return merged
