"""CLI commands for managing Life Reveal engine settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from lifereveal.configuration.settings import (
    DEFAULT_CONFIG_PATH,
    EngineSettings,
    bootstrap_settings,
    load_settings,
    save_settings,
)
from lifereveal.errors import ConfigurationError


config_app = typer.Typer(help="Manage Life Reveal engine configuration")


@config_app.command("init")
def init_config(
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Engine config JSON"),
    workspace: Optional[Path] = typer.Option(None, help="Override workspace directory"),
    timezone: Optional[str] = typer.Option(None, help="IANA timezone, e.g. Europe/Warsaw"),
    call_timeout: Optional[float] = typer.Option(None, help="Seconds allowed per scheduler call"),
) -> None:
    """Write the engine config, creating the workspace if needed."""

    overrides = {
        "workspace_path": str(workspace) if workspace else None,
        "timezone": timezone,
        "call_timeout_seconds": call_timeout,
    }
    try:
        settings = bootstrap_settings(path=config_path, overrides=overrides)
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Engine config written to {config_path}")
    typer.echo(_summarize_settings(settings))


@config_app.command("show")
def show_config(config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Engine config JSON")) -> None:
    """Display effective configuration, environment overrides included."""

    try:
        settings = bootstrap_settings(path=config_path, persist=False)
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(_summarize_settings(settings))


@config_app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key, e.g. timezone"),
    value: str = typer.Argument(..., help="New value"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Engine config JSON"),
) -> None:
    """Change one engine setting and save it."""

    if key not in EngineSettings.model_fields:
        valid = ", ".join(EngineSettings.model_fields)
        typer.echo(f"❌ Unknown key '{key}'. Valid: {valid}", err=True)
        raise typer.Exit(code=1)

    settings = load_settings(config_path) if config_path.exists() else EngineSettings()
    payload = settings.model_dump(mode="python")
    payload[key] = None if value.lower() in {"", "none", "null"} else value
    try:
        updated = EngineSettings.model_validate(payload)
    except ValueError as e:
        typer.echo(f"❌ Invalid value for {key}: {e}", err=True)
        raise typer.Exit(code=1)
    save_settings(updated, config_path)
    typer.echo(f"Updated {key}")


@config_app.command("validate")
def validate_config(
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Engine config JSON"),
) -> None:
    """Check that the engine config file loads and validates."""

    try:
        settings = load_settings(config_path)
        typer.echo(f"✅ Engine config OK: {config_path}")
        typer.echo(f"   Workspace: {settings.workspace_path}")
        typer.echo(f"   Timezone: {settings.timezone or 'local'}")
        typer.echo(f"   Call timeout: {settings.call_timeout_seconds or 'none'}")
    except (FileNotFoundError, ConfigurationError) as e:
        typer.echo(f"❌ Engine config rejected: {e}", err=True)
        raise typer.Exit(code=1)


def _summarize_settings(settings: EngineSettings) -> str:
    return json.dumps(settings.model_dump(mode="json"), indent=2)
