"""Configuration management for the Referer CLI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_API_BASE_URL = "http://127.0.0.1:8000"


def config_path() -> Path:
    """Location of the CLI config file."""
    return Path.home() / ".config" / "referer" / "config.yaml"


@dataclass
class Config:
    """Referer CLI configuration."""

    api_base_url: str = DEFAULT_API_BASE_URL
    user_id: Optional[str] = None

    @classmethod
    def load(cls) -> "Config":
        """Load config from ~/.config/referer/config.yaml or use defaults."""
        path = config_path()

        if path.exists():
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
                user_id = data.get("user_id")
                return cls(
                    api_base_url=str(data.get("api_base_url") or DEFAULT_API_BASE_URL),
                    user_id=str(user_id) if user_id else None,
                )

        return cls()

    def save(self):
        """Save config to file."""
        path = config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump({
                "api_base_url": self.api_base_url,
                "user_id": self.user_id,
            }, f)
