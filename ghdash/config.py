"""Configuration loading and constants for ghdash."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml


# ---------------------------------------------------------------------------
# Environment keys
# ---------------------------------------------------------------------------

ENV_XDG_CONFIG_HOME = "XDG_CONFIG_HOME"
ENV_HOME = "HOME"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_MOCK_FILE = "GHDASH_MOCK_FILE"

OutputFormat = Literal["text", "json"]

# Defaults, overridable in config.yaml
DEFAULT_STATUS_TTL_SECONDS = 3.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.1
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Config:
    """Runtime configuration, built once at startup and passed down explicitly."""

    token: str = ""
    config_path: Path = Path(".config") / "ghdash" / "config.yaml"
    output_format: OutputFormat = "text"
    slugs: list[str] = field(default_factory=list)
    status_ttl_seconds: float = DEFAULT_STATUS_TTL_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL
    mock_file: Path | None = None

    @property
    def config_dir(self) -> Path:
        return self.config_path.parent

    @property
    def log_path(self) -> Path:
        return self.config_dir / "logs" / "dashboard.log"


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def get_config_home(env: Mapping[str, str] | None = None) -> Path:
    """Resolve the base configuration directory.

    ``$XDG_CONFIG_HOME`` wins, then ``$HOME/.config``, then a relative
    ``.config`` when neither variable is set.
    """
    env = os.environ if env is None else env
    xdg = env.get(ENV_XDG_CONFIG_HOME)
    if xdg:
        return Path(xdg)
    home = env.get(ENV_HOME)
    if home:
        return Path(home) / ".config"
    return Path(".config")


def get_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Get path to ghdash's own config.yaml."""
    return get_config_home(env) / "ghdash" / "config.yaml"


def get_gh_hosts_path(env: Mapping[str, str] | None = None) -> Path:
    """Get path to the gh CLI's hosts.yml."""
    return get_config_home(env) / "gh" / "hosts.yml"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    """Read a YAML file expected to hold a mapping.

    Missing, unreadable or malformed files yield an empty dict.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return {}
    return data if isinstance(data, dict) else {}


def _seconds(value: Any, default: float) -> float:
    """A positive number of seconds, or the default for anything else."""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return default
    return seconds if seconds > 0 else default


def resolve_token(
    file_config: Mapping[str, Any],
    gh_hosts: Mapping[str, Any],
    env: Mapping[str, str],
) -> str:
    """Pick the API token.

    Order: gh CLI's github.com oauth_token, then ``token`` from
    config.yaml, then ``$GITHUB_TOKEN``.
    """
    host = gh_hosts.get("github.com")
    if isinstance(host, dict) and host.get("oauth_token"):
        return str(host["oauth_token"])
    if file_config.get("token"):
        return str(file_config["token"])
    return env.get(ENV_GITHUB_TOKEN, "")


def load_config(
    env: Mapping[str, str] | None = None,
    output_format: OutputFormat = "text",
) -> Config:
    """Build a Config from the environment and the YAML config files."""
    env = os.environ if env is None else env
    config_path = get_config_path(env)
    file_config = _read_yaml_mapping(config_path)
    gh_hosts = _read_yaml_mapping(get_gh_hosts_path(env))

    dashboard = file_config.get("dashboard") or {}
    if not isinstance(dashboard, dict):
        dashboard = {}
    logging_config = file_config.get("logging") or {}
    if not isinstance(logging_config, dict):
        logging_config = {}

    slugs = dashboard.get("slugs") or []
    if isinstance(slugs, str):
        slugs = [slugs]

    mock_file = env.get(ENV_MOCK_FILE)

    return Config(
        token=resolve_token(file_config, gh_hosts, env),
        config_path=config_path,
        output_format=output_format,
        slugs=[str(s) for s in slugs],
        status_ttl_seconds=_seconds(
            dashboard.get("status_ttl_seconds"), DEFAULT_STATUS_TTL_SECONDS
        ),
        poll_interval_seconds=_seconds(
            dashboard.get("poll_interval_seconds"), DEFAULT_POLL_INTERVAL_SECONDS
        ),
        log_level=str(logging_config.get("level", DEFAULT_LOG_LEVEL)).upper(),
        mock_file=Path(mock_file) if mock_file else None,
    )


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

def save_token(config: Config, token: str) -> Path:
    """Write the token into config.yaml, keeping any other keys.

    Returns:
        Path of the written file
    """
    path = config.config_path
    data = _read_yaml_mapping(path)
    data["token"] = token
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False)
    config.token = token
    return path


def delete_config(config: Config) -> bool:
    """Remove config.yaml if present. Returns True if a file was deleted."""
    path = config.config_path
    if not path.exists():
        return False
    path.unlink()
    return True
