"""CLI commands for fetching, analyzing and fixing SonarQube findings."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .chat import ChatHandlers, ChatSession, ResponseStream, render_findings, render_result
from .clients.sonarqube import SonarQubeClient
from .config import (
    DEFAULT_CONFIG_NAME,
    RemediationConfig,
    copy_config_template,
    load_remediation_config,
    mask_token,
    write_config,
)
from .errors import ConfigError, RemediationError
from .findings import Confirmation
from .fixing.agent import CommandAgent, FixAgent, NullAgent, TerminalEditor
from .orchestrator import RemediationOrchestrator
from .reporting import render_markdown, summarize

APP_HELP = "Sonar Autofix: remediate SonarQube findings with a fixing agent and git."

app = typer.Typer(help=APP_HELP)

_CONFIRM_CHOICES = {
    "a": Confirmation.APPLIED,
    "applied": Confirmation.APPLIED,
    "s": Confirmation.SKIP,
    "skip": Confirmation.SKIP,
    "c": Confirmation.CANCEL,
    "cancel": Confirmation.CANCEL,
}


class TerminalStream(ResponseStream):
    """Write chat segments straight to the terminal."""

    def markdown(self, text: str) -> None:
        typer.echo(text)

    def progress(self, text: str) -> None:
        typer.secho(text, dim=True)


def terminal_confirm(prompt: str) -> Confirmation:
    """Ask until the user answers applied, skip or cancel."""
    while True:
        answer = typer.prompt(f"{prompt} [a]pplied/[s]kip/[c]ancel", default="s")
        choice = _CONFIRM_CHOICES.get(answer.strip().lower())
        if choice is not None:
            return choice
        typer.echo("Please answer 'a', 's' or 'c'.")


def _load(config: str) -> RemediationConfig:
    config_path = Path(config)
    try:
        return load_remediation_config(config_path)
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _build_agent(config: RemediationConfig) -> FixAgent:
    if config.agent_command:
        return CommandAgent(config.agent_command, cwd=config.workspace_root)
    return NullAgent()


def _build_orchestrator(config: RemediationConfig, stream: ResponseStream) -> RemediationOrchestrator:
    return RemediationOrchestrator.from_config(
        config,
        agent=_build_agent(config),
        editor=TerminalEditor(stream.markdown),
        confirm=terminal_confirm,
        ask=lambda question: typer.confirm(question, default=False),
        notify=stream.markdown,
        progress=stream.progress,
        open_url=lambda url: typer.launch(url),
    )


def _run_fix(config: RemediationConfig, only_key: Optional[str]) -> None:
    stream = TerminalStream()
    try:
        result = _build_orchestrator(config, stream).run(only_key=only_key)
    except RemediationError as error:
        typer.echo(f"Error: {error}")
        raise typer.Exit(code=1) from error
    typer.echo(render_result(result))
    if result.log_path is not None:
        typer.echo(f"Session log: {result.log_path.as_posix()}")
    if not result.ok:
        raise typer.Exit(code=1)


ConfigOption = typer.Option(
    DEFAULT_CONFIG_NAME,
    "--config",
    "-c",
    help="Path to the configuration file.",
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def init(
    config: str = ConfigOption,
    sonar_url: Optional[str] = typer.Option(None, "--sonar-url", help="SonarQube server URL."),
    token: Optional[str] = typer.Option(None, "--token", help="SonarQube user token."),
    project_key: Optional[str] = typer.Option(None, "--project-key", help="SonarQube project key."),
    branch: Optional[str] = typer.Option(None, "--branch", help="Branch that receives fix commits."),
    agent_command: Optional[str] = typer.Option(
        None,
        "--agent-command",
        help="Shell template for the fixing agent; supports {path}, {line} and {prompt}.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration."),
) -> None:
    """Write a configuration file with defaults and the given overrides."""
    config_path = Path(config)
    if config_path.exists() and not force:
        typer.echo(f"Configuration already exists at {config_path}; use --force to overwrite.")
        raise typer.Exit(code=1)

    data = copy_config_template()
    if sonar_url:
        data["sonarUrl"] = sonar_url
    if token:
        data["sonarToken"] = token
    if project_key:
        data["projectKey"] = project_key
    if branch:
        data["gitBranch"] = branch
    if agent_command:
        data["agent"]["command"] = agent_command
    write_config(config_path, data)
    typer.echo(f"Wrote configuration at {config_path}.")


@app.command()
def status(config: str = ConfigOption) -> None:
    """Validate configuration and report basic status information."""
    settings = _load(config)
    typer.echo(f"Loaded configuration from {config}")
    for key, value in settings.describe().items():
        typer.echo(f"{key}: {value}")
    agent = _build_agent(settings)
    typer.echo(f"Agent available: {'yes' if agent.is_available() else 'no (manual mode)'}")


@app.command()
def fetch(config: str = ConfigOption) -> None:
    """List unresolved findings for the configured project."""
    settings = _load(config)
    try:
        batch = SonarQubeClient(settings).fetch()
    except RemediationError as error:
        typer.echo(f"Error: {error}")
        raise typer.Exit(code=1) from error
    typer.echo(render_findings(batch))


@app.command()
def analyze(config: str = ConfigOption) -> None:
    """Summarize findings by severity, type and most frequent rules."""
    settings = _load(config)
    try:
        batch = SonarQubeClient(settings).fetch()
    except RemediationError as error:
        typer.echo(f"Error: {error}")
        raise typer.Exit(code=1) from error
    typer.echo(render_markdown(summarize(batch)))


@app.command("fix-all")
def fix_all(config: str = ConfigOption) -> None:
    """Fix every fetched finding, committing each applied fix."""
    _run_fix(_load(config), None)


@app.command()
def fix(
    key: str = typer.Argument(..., help="Finding key to fix, e.g. AXk3-abc or BUG-12."),
    config: str = ConfigOption,
) -> None:
    """Fix a single finding identified by its key."""
    _run_fix(_load(config), key)


@app.command()
def chat(config: str = ConfigOption) -> None:
    """Start an interactive session; type /help for commands and 'exit' to quit."""
    settings = _load(config)
    stream = TerminalStream()
    session = ChatSession(
        ChatHandlers(
            config=settings,
            issues=SonarQubeClient(settings),
            orchestrator_factory=lambda current: _build_orchestrator(settings, current),
        )
    )
    typer.echo(f"Connected to {settings.sonar_url} (token {mask_token(settings.sonar_token)}).")
    while True:
        try:
            text = typer.prompt(">", prompt_suffix=" ")
        except (EOFError, typer.Abort):
            break
        if text.strip().lower() in {"exit", "quit"}:
            break
        followups = session.send(text, stream)
        if followups:
            suggestions = ", ".join(f"/{item.command} ({item.label})" for item in followups)
            typer.secho(f"Next: {suggestions}", dim=True)


if __name__ == "__main__":
    app()
