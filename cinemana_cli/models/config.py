"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)
DEFAULT_NAME_TEMPLATE = "{title}.{quality}"


def _split_csv(value):
    """Accepts either a comma-separated string or a list and returns a clean list."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if str(v).strip()]


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    # Catalog & HTTP
    base_url: str = ""
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 60.0

    # Download Settings
    output_dir: str = "downloads"
    quality: str = "mp4-1080"
    max_workers: int = 4
    retry_count: int = 3
    job_retries: int = 2
    expiry_warn_minutes: int = 10
    skip_existing: bool = True
    overwrite: bool = False
    dry_run: bool = False
    save_metadata: bool = True

    # Layout & Naming
    structure: Literal["flat", "series"] = "flat"
    name_template: str = DEFAULT_NAME_TEMPLATE

    # Subtitles & Post-processing
    subs: list[str] = Field(default_factory=list)
    subs_format: Literal["srt", "vtt", "both"] = "both"
    mux_subs: bool = False
    burn_subs: bool = False
    ffmpeg_path: str = "ffmpeg"

    # Series Discovery
    no_cache: bool = False
    cache_path: str = ".cinemana-cache.json"
    series_ep_endpoint: Optional[str] = None
    series_ep_season_param: Optional[str] = None
    discover_langs: list[str] = Field(default_factory=lambda: ["ar", "en"])
    discover_levels: list[str] = Field(default_factory=lambda: ["0", "1", "2", "3"])

    # Display
    progress: Literal["auto", "none"] = "auto"
    log_level: str = "info"

    # Internal fields not loaded from INI file
    movie_ids: list[str] = Field(default_factory=list, repr=False)
    from_video_ids: list[str] = Field(default_factory=list, repr=False)
    series_ids: list[str] = Field(default_factory=list, repr=False)
    seasons: list[str] = Field(default_factory=list, repr=False)
    ids_file: Optional[str] = Field(default=None, repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slashes(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator(
        "subs",
        "discover_langs",
        "discover_levels",
        "movie_ids",
        "from_video_ids",
        "series_ids",
        "seasons",
        mode="before",
    )
    @classmethod
    def split_lists(cls, v):
        return _split_csv(v)

    @field_validator("subs")
    @classmethod
    def lowercase_languages(cls, v: list[str]) -> list[str]:
        return [lang.lower() for lang in v]

    @field_validator("series_ep_endpoint", "series_ep_season_param")
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of workers."""
        if v < 1 or v > 32:
            raise ValueError("Max workers must be between 1 and 32.")
        return v

    @field_validator("retry_count", "job_retries", "expiry_warn_minutes")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must not be negative.")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be a positive number of seconds.")
        return v

    @field_validator("name_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        """Validates the filename template."""
        if not v:
            raise ValueError("Name template cannot be empty.")
        if "/" in v or "\\" in v or ".." in v:
            raise ValueError(
                "Name template describes a file name and cannot contain path separators."
            )
        if "{title}" not in v and "{episode}" not in v:
            raise ValueError("Name template must contain at least {title} or {episode}.")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.lower()
        if v not in ("error", "warn", "warning", "info", "debug"):
            raise ValueError("Log level must be one of error, warn, info, debug.")
        return v

    @property
    def cache_enabled(self) -> bool:
        return not self.no_cache

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {
            "movie_ids",
            "from_video_ids",
            "series_ids",
            "seasons",
            "ids_file",
            "dry_run",
        }
        return {key for key in cls.model_fields if key not in internal_fields}
