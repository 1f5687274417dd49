"""Settings resolution.

Builds the explicit configuration value every tool receives. Resolution
order (later wins):
    1. Built-in defaults
    2. YAML config file ($GIT_REPO_CONFIG or ~/.config/git-repo/config.yaml)
    3. Environment variables (TOOLS_BASE_DIR, TOOLS_BIN_DIR, ...)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from gitrepo.primitives.errors import ConfigurationError

DEFAULT_BASE_DIR = "/usr/local/tools"
DEFAULT_BIN_DIR = "/usr/local/bin"
DEFAULT_PYTHON = "python3"
DEFAULT_CONFIG_PATH = "~/.config/git-repo/config.yaml"
DEFAULT_LOG_DIR = "~/.local/state/git-repo/logs"

# config key -> environment variable
ENV_OVERRIDES = {
    "base_dir": "TOOLS_BASE_DIR",
    "bin_dir": "TOOLS_BIN_DIR",
    "python": "GIT_REPO_PYTHON",
    "log_dir": "GIT_REPO_LOG_DIR",
}

CONFIG_ENV_VAR = "GIT_REPO_CONFIG"


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one invocation.

    Attributes:
        base_dir: Clone root; every project lives at base_dir/<name>.
        bin_dir: Shared directory receiving one run target per project.
        python: Interpreter used to create virtual environments.
        log_dir: Directory for rotating log files.
        config_path: Config file that was loaded, if any.
    """

    base_dir: Path
    bin_dir: Path
    python: str = DEFAULT_PYTHON
    log_dir: Path = Path(DEFAULT_LOG_DIR).expanduser()
    config_path: Optional[Path] = None


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Resolve Settings from defaults, config file and environment.

    Args:
        environ: Environment mapping (defaults to os.environ).
        config_path: Explicit config file. Overrides $GIT_REPO_CONFIG.

    Returns:
        Frozen Settings.

    Raises:
        ConfigurationError: If an explicitly requested config file is
            missing, or a config file is malformed.
    """
    env = os.environ if environ is None else environ

    values: Dict[str, Any] = {
        "base_dir": DEFAULT_BASE_DIR,
        "bin_dir": DEFAULT_BIN_DIR,
        "python": DEFAULT_PYTHON,
        "log_dir": DEFAULT_LOG_DIR,
    }

    explicit = config_path is not None or bool(env.get(CONFIG_ENV_VAR))
    path = Path(config_path or env.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()

    loaded_from: Optional[Path] = None
    if path.is_file():
        values.update(_load_config_file(path))
        loaded_from = path
    elif explicit:
        raise ConfigurationError(f"Config file not found: {path}", field="config")

    for key, var in ENV_OVERRIDES.items():
        override = env.get(var)
        if override:
            values[key] = override

    python = str(values["python"]).strip()
    if not python:
        raise ConfigurationError("python must not be empty", field="python")

    return Settings(
        base_dir=_as_dir(values["base_dir"], "base_dir"),
        bin_dir=_as_dir(values["bin_dir"], "bin_dir"),
        python=python,
        log_dir=_as_dir(values["log_dir"], "log_dir"),
        config_path=loaded_from,
    )


def _load_config_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {e}", field="config") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}", field="config") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}",
            field="config",
        )

    unknown = sorted(set(data) - set(ENV_OVERRIDES))
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in config file {path}: {', '.join(unknown)}",
            field=unknown[0],
        )
    return data


def _as_dir(value: Any, field: str) -> Path:
    if not isinstance(value, (str, os.PathLike)) or not str(value).strip():
        raise ConfigurationError(f"{field} must be a non-empty path, got {value!r}", field=field)
    return Path(value).expanduser().absolute()
