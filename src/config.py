"""
Configuration module for sanity-deploy.

Loads configuration from environment variables. Each concern gets its own
section so reconcilers and adapters only receive the settings they use.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_int(name: str, default: str) -> int:
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _env_float(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


@dataclass
class HerokuConfig:
    """Heroku CLI and git remote configuration."""

    cli: str = "heroku"
    git_url_template: str = "https://git.heroku.com/{app}.git"
    deploy_ref: str = "master"
    branch_prefix: str = "sanity/heroku"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            cli=os.getenv("HEROKU_CLI", "heroku"),
            git_url_template=os.getenv(
                "HEROKU_GIT_URL", "https://git.heroku.com/{app}.git"
            ),
            deploy_ref=os.getenv("HEROKU_DEPLOY_REF", "master"),
            branch_prefix=os.getenv("SANITY_BRANCH_PREFIX", "sanity/heroku"),
        )

    def git_url(self, app: str) -> str:
        """Git remote URL for an app."""
        return self.git_url_template.format(app=app)


@dataclass
class ConvergenceConfig:
    """Convergence loop guard rails."""

    max_iterations: int = 50  # 0 = unbounded
    stagnation_limit: int = 3  # 0 = disabled
    addon_stagnation_limit: int = 1  # 0 = disabled
    settle_delay: float = 0.0  # seconds between apply and re-observe

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            max_iterations=_env_int("SANITY_MAX_ITERATIONS", "50"),
            stagnation_limit=_env_int("SANITY_STAGNATION_LIMIT", "3"),
            addon_stagnation_limit=_env_int("SANITY_ADDON_STAGNATION_LIMIT", "1"),
            settle_delay=_env_float("SANITY_SETTLE_DELAY", "0"),
        )


@dataclass
class RunnerConfig:
    """Command runner configuration."""

    command_timeout: Optional[float] = None  # seconds, None = wait forever

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        timeout = os.getenv("SANITY_COMMAND_TIMEOUT", "")
        return cls(
            command_timeout=_env_float("SANITY_COMMAND_TIMEOUT", timeout)
            if timeout
            else None,
        )


@dataclass
class CLIConfig:
    """Command line interface configuration."""

    log_level: str = "INFO"
    sanityfile_name: str = "Sanityfile"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            sanityfile_name=os.getenv("SANITYFILE_NAME", "Sanityfile"),
        )


@dataclass
class Config:
    """Main configuration object."""

    heroku: HerokuConfig = field(default_factory=HerokuConfig)
    convergence: ConvergenceConfig = field(default_factory=ConvergenceConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            heroku=HerokuConfig.from_env(),
            convergence=ConvergenceConfig.from_env(),
            runner=RunnerConfig.from_env(),
            cli=CLIConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            heroku=HerokuConfig(),
            convergence=ConvergenceConfig(),
            runner=RunnerConfig(),
            cli=CLIConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
