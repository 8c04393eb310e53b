"""
ringside.settings
=================

Configuration settings for the Ringside roster engine.

This module provides centralized configuration options that can be used
across the package.  It includes default values that can be overridden
via environment variables (or a ``.env`` file for the pydantic model).
"""

from __future__ import annotations

import os
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

# ---------------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------------
# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Database settings
# ---------------------------------------------------------------------------
DB_FILE = os.environ.get("RINGSIDE_DB_FILE", BASE_DIR / "ringside.db")
DB_URL = os.environ.get("RINGSIDE_DB_URL", f"sqlite:///{DB_FILE}")
DB_ECHO = os.environ.get("RINGSIDE_DB_ECHO", "False").lower() == "true"

# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("RINGSIDE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Pydantic settings model for roster rules
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Domain tunables, loaded from environment variables."""

    tag_team_size: int = Field(2, ge=1, description="Current wrestler partners a tag team must keep")
    stable_minimum_members: int = Field(
        3, ge=0, description="Minimum stable size after reconciliation (a tag team counts as two)"
    )
    conflict_retries: int = Field(
        1, ge=0, description="Retries of a transition that hit a concurrent modification"
    )

    class Config:
        """Configuration for the settings model."""
        env_prefix = "RINGSIDE_"
        env_file = ".env"  # load from .env file if present
        case_sensitive = False  # case-insensitive environment variables
        extra = "ignore"

# Initialize settings
settings = Settings()
