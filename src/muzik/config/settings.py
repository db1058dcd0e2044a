"""Application settings.

Hey future me - every value here can come from the environment with the MUZIK_ prefix, nested
groups use "__" (e.g. MUZIK_LIBRARY__MUSIC_DIR=/data/music, MUZIK_TAGGING__ID_TAG_KEY=DBID).
A .env file in the working directory is read too.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from muzik.domain.value_objects.naming import (
    DEFAULT_COMPONENTS,
    ColonReplacement,
    ComponentKind,
    Enclose,
    FileNameComponent,
    FilenameComposer,
)


class LibrarySettings(BaseModel):
    """Where the collection lives."""

    music_dir: Path = Field(
        default=Path.home() / "Music",
        description="Root of the music collection (scanned one level deep)",
    )
    database_filename: str = Field(
        default="database.sqlite",
        description="SQLite file created inside music_dir",
    )

    @field_validator("music_dir", mode="after")
    @classmethod
    def _expand_music_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def database_path(self) -> Path:
        return self.music_dir / self.database_filename


class DatabaseSettings(BaseModel):
    """Database engine configuration."""

    # Empty means "derive from library.music_dir", see Settings._derive_database_url
    url: str = Field(default="", description="SQLAlchemy async database URL")
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = Field(default=True)
    auto_create_tables: bool = Field(
        default=True, description="Create missing tables on startup"
    )


class NamingComponentSettings(BaseModel):
    """One configured filename component: {kind, enclose, text}."""

    kind: ComponentKind
    enclose: Enclose = Enclose.NONE
    text: str = ""

    def to_component(self) -> FileNameComponent:
        return FileNameComponent(kind=self.kind, enclose=self.enclose, text=self.text)


def _default_components() -> list[NamingComponentSettings]:
    return [
        NamingComponentSettings(kind=c.kind, enclose=c.enclose, text=c.text)
        for c in DEFAULT_COMPONENTS
    ]


class NamingSettings(BaseModel):
    """Filename format of songs on disk."""

    components: list[NamingComponentSettings] = Field(default_factory=_default_components)
    replace_illegal_characters: bool = True
    colon_replacement: ColonReplacement = ColonReplacement.SPACE_DASH

    def composer(self) -> FilenameComposer:
        return FilenameComposer(
            [c.to_component() for c in self.components],
            replace_illegal_characters=self.replace_illegal_characters,
            colon_replacement=self.colon_replacement,
        )


class TaggingSettings(BaseModel):
    """Custom tag keys that carry identity inside each file."""

    id_tag_key: str = Field(default="DBID", description="Canonical database id key")
    # Hey future me - older builds wrote the id as "ID". Still read during the transition,
    # never written. TagMigrationService rewrites them to id_tag_key.
    legacy_id_tag_keys: list[str] = Field(default_factory=lambda: ["ID"])
    source_id_tag_key: str = Field(default="YTID", description="Streaming source id key")
    embed_artwork: bool = Field(
        default=False, description="Embed the thumbnail as cover when saving"
    )

    @field_validator("id_tag_key", "source_id_tag_key", mode="after")
    @classmethod
    def _non_empty_key(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("tag key cannot be empty")
        return value

    @field_validator("legacy_id_tag_keys", mode="after")
    @classmethod
    def _normalize_legacy_keys(cls, value: list[str]) -> list[str]:
        return [key.strip().upper() for key in value if key.strip()]


class ObservabilitySettings(BaseModel):
    """Logging configuration."""

    log_json_format: bool = Field(default=False, description="Emit JSON log lines")


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="MUZIK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "muzik"
    log_level: str = "INFO"

    library: LibrarySettings = Field(default_factory=LibrarySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    naming: NamingSettings = Field(default_factory=NamingSettings)
    tagging: TaggingSettings = Field(default_factory=TaggingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level

    @model_validator(mode="after")
    def _derive_database_url(self) -> "Settings":
        if not self.database.url:
            self.database.url = f"sqlite+aiosqlite:///{self.library.database_path}"
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
