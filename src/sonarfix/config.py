"""Configuration loading for Sonar Autofix."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "config.yaml"
DEFAULT_SONAR_URL = "http://localhost:9000"
DEFAULT_BRANCH = "sonar-auto-fix"
TOKEN_ENV_VAR = "SONAR_TOKEN"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "sonarUrl": DEFAULT_SONAR_URL,
    "sonarToken": "",
    "projectKey": "",
    "gitBranch": DEFAULT_BRANCH,
    "workspaceRoot": ".",
    "filters": {
        "types": ["BUG"],
        "severities": ["BLOCKER", "CRITICAL", "MAJOR"],
        "resolved": False,
    },
    "fixDelaySeconds": 1.0,
    "agent": {
        "command": "",
    },
    "paths": {
        "logs": "data/logs",
    },
}


@dataclass(frozen=True, slots=True)
class RemediationConfig:
    """Explicit configuration handed to the issue client and the orchestrator."""

    sonar_url: str = DEFAULT_SONAR_URL
    sonar_token: str = ""
    project_key: str = ""
    git_branch: str = DEFAULT_BRANCH
    workspace_root: Path = field(default_factory=Path.cwd)
    types: tuple[str, ...] = ("BUG",)
    severities: tuple[str, ...] = ("BLOCKER", "CRITICAL", "MAJOR")
    resolved: bool = False
    fix_delay_seconds: float = 1.0
    agent_command: str | None = None
    logs_root: Path | None = None
    config_path: Path | None = None

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        base_dir: Path | None = None,
        environ: Mapping[str, str] | None = None,
        config_path: Path | None = None,
    ) -> "RemediationConfig":
        """Build a config from a parsed YAML mapping.

        Relative ``workspaceRoot`` and ``paths.logs`` values are resolved against
        ``base_dir`` (normally the directory holding the config file).  ``config_path``
        records where the settings came from so the file, which may hold the
        token, can be kept out of fix commits.
        """
        env = os.environ if environ is None else environ
        base = Path(base_dir or Path.cwd()).resolve()

        token = _as_text(data.get("sonarToken"))
        if not token:
            token = _as_text(env.get(TOKEN_ENV_VAR))

        workspace = Path(_as_text(data.get("workspaceRoot")) or ".")
        if not workspace.is_absolute():
            workspace = (base / workspace).resolve()

        filters = data.get("filters") or {}
        if not isinstance(filters, Mapping):
            raise ConfigError("'filters' must be a mapping.")
        types = _as_upper_tuple(filters.get("types"), ("BUG",))
        severities = _as_upper_tuple(filters.get("severities"), ("BLOCKER", "CRITICAL", "MAJOR"))
        resolved = bool(filters.get("resolved", False))

        delay_value = data.get("fixDelaySeconds", 1.0)
        try:
            delay = float(delay_value)
        except (TypeError, ValueError) as error:
            raise ConfigError(f"'fixDelaySeconds' must be a number, got {delay_value!r}") from error
        if delay < 0:
            raise ConfigError("'fixDelaySeconds' must not be negative.")

        agent_cfg = data.get("agent") or {}
        agent_command = _as_text(agent_cfg.get("command")) if isinstance(agent_cfg, Mapping) else ""

        paths_cfg = data.get("paths") or {}
        logs_value = _as_text(paths_cfg.get("logs")) if isinstance(paths_cfg, Mapping) else ""
        logs_root = Path(logs_value or "data/logs")
        if not logs_root.is_absolute():
            logs_root = (base / logs_root).resolve()

        return cls(
            sonar_url=(_as_text(data.get("sonarUrl")) or DEFAULT_SONAR_URL).rstrip("/"),
            sonar_token=token,
            project_key=_as_text(data.get("projectKey")),
            git_branch=_as_text(data.get("gitBranch")) or DEFAULT_BRANCH,
            workspace_root=workspace,
            types=types,
            severities=severities,
            resolved=resolved,
            fix_delay_seconds=delay,
            agent_command=agent_command or None,
            logs_root=logs_root,
            config_path=config_path.resolve() if config_path is not None else None,
        )

    def require_credentials(self) -> None:
        """Raise :class:`ConfigError` unless the token and project key are set."""
        missing = []
        if not self.sonar_token:
            missing.append("sonarToken")
        if not self.project_key:
            missing.append("projectKey")
        if missing:
            raise ConfigError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Run `sonar-autofix init` or edit config.yaml."
            )

    def describe(self) -> Dict[str, Any]:
        """Return a display-safe view of the configuration with the token masked."""
        return {
            "sonarUrl": self.sonar_url,
            "sonarToken": mask_token(self.sonar_token),
            "projectKey": self.project_key or "(not set)",
            "gitBranch": self.git_branch,
            "workspaceRoot": self.workspace_root.as_posix(),
            "severities": ",".join(self.severities),
            "agent": self.agent_command or "(manual mode)",
        }


def mask_token(token: str) -> str:
    if not token:
        return "(not set)"
    if len(token) <= 4:
        return "*" * len(token)
    return f"{'*' * (len(token) - 4)}{token[-4:]}"


def copy_config_template() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration from disk and return it as a dictionary."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")
    return data


def write_config(config_path: Path, config_data: Mapping[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(config_data), handle, sort_keys=False)


def load_remediation_config(config_path: Path) -> RemediationConfig:
    """Load ``config_path`` and resolve it into a :class:`RemediationConfig`."""
    data = load_config(config_path)
    return RemediationConfig.from_mapping(
        data,
        base_dir=config_path.resolve().parent,
        config_path=config_path,
    )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_upper_tuple(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(part) for part in value]
    else:
        raise ConfigError(f"Expected a list of filter values, got {value!r}")
    cleaned = tuple(item.strip().upper() for item in items if item.strip())
    return cleaned or default


__all__ = [
    "DEFAULT_BRANCH",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_CONFIG_TEMPLATE",
    "DEFAULT_SONAR_URL",
    "RemediationConfig",
    "copy_config_template",
    "load_config",
    "load_remediation_config",
    "mask_token",
    "write_config",
]
