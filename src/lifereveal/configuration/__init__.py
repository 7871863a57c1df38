"""Configuration loading utilities for Life Reveal."""

from .settings import (
    DEFAULT_CONFIG_PATH,
    EngineSettings,
    bootstrap_settings,
    load_settings,
    save_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EngineSettings",
    "bootstrap_settings",
    "load_settings",
    "save_settings",
]
