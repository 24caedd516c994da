"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from db_importer.config import load_importer_config, DatabaseProfile
"""

from db_importer.config.loader import load_importer_config
from db_importer.config.models import DatabaseProfile, ImportDefaults, ImporterConfig

__all__ = ["load_importer_config", "DatabaseProfile", "ImportDefaults", "ImporterConfig"]
