"""Environment-based token discovery for spectrsync.

Loads a ``.env`` file (python-dotenv) when present and looks the GitHub token
up in the usual environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_ALTERNATIVES = ("GH_TOKEN", "GITHUB_PAT", "GITHUB_ACCESS_TOKEN")
DOTENV_CANDIDATES = (".env", ".env.local")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"


class EnvironmentAuthManager:
    """Resolves the GitHub token from environment variables and .env files."""

    def __init__(self, config: EnvAuthConfig, base_dir: Path | None = None):
        self.config = config
        self.base_dir = base_dir or Path.cwd()
        self.logger = get_logger()
        self.dotenv_loaded: Path | None = None

        if config.load_dotenv:
            self._load_dotenv()

    def _load_dotenv(self) -> None:
        """Load the first existing .env file; existing variables win."""
        if self.config.dotenv_path:
            candidates = [self.base_dir / self.config.dotenv_path]
        else:
            candidates = [self.base_dir / name for name in DOTENV_CANDIDATES]
        for env_path in candidates:
            if env_path.is_file():
                load_dotenv(env_path, override=False)
                self.dotenv_loaded = env_path
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def get_github_token(self) -> str | None:
        """Get GitHub token from environment variables."""
        for var in (self.config.github_token_var, *TOKEN_ALTERNATIVES):
            token = (os.getenv(var) or "").strip()
            if token:
                self.logger.debug(f"Found GitHub token in {var}")
                return token
        return None


def create_env_auth_manager(
    config: EnvAuthConfig | None = None, base_dir: Path | None = None
) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    if config is None:
        config = EnvAuthConfig()
    return EnvironmentAuthManager(config, base_dir=base_dir)


__all__ = ["EnvAuthConfig", "EnvironmentAuthManager", "create_env_auth_manager"]
