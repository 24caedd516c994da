"""Pydantic models for db.toml configuration."""

from pydantic import BaseModel, Field

from db_importer.importer.models import ImportOptions, ImportStrategy


class DatabaseProfile(BaseModel):
    """Target database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class ImportDefaults(BaseModel):
    """Default run options from the ``[import]`` table of db.toml."""

    strategy: ImportStrategy = ImportStrategy.MERGE
    preserve_ids: bool | None = None
    disable_foreign_key_checks: bool = True
    documentation_fallback: bool = True
    tables: list[str] | None = None

    def to_options(self, **overrides) -> ImportOptions:
        """Build ``ImportOptions`` from these defaults.

        ``None`` overrides are ignored so unset CLI flags keep the default.
        """
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ImportOptions(**values)


class ImporterConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    defaults: ImportDefaults = Field(default_factory=ImportDefaults)
