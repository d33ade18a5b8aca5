"""
Centralized configuration loader for the post cadence planner.

Loads settings from YAML files and environment variables, providing
sensible defaults when configuration files are absent.

Provides:
    - PostingWindow: ``{earliest, latest}`` time-of-day pair used by the TimeAssigner
    - IndustryProfile / INDUSTRY_PROFILES: per-business posting windows and cadence
    - get_industry_profile(): profile lookup with fallback to ``restaurant``
    - DEFAULT_DAY_PRIORITY: weekday engagement ranking used by the SlotPlanner
    - Settings: Global application settings loaded from YAML + env vars
    - get_settings(): Cached singleton accessor for Settings
    - validate_env(): Startup validation of the Supabase environment variables
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from postplanner.exceptions import (
    ConfigurationCorruptedError,
    ConfigurationError,
    ParseError,
)
from postplanner.utils import minutes_to_time, time_to_minutes

# ---------------------------------------------------------------------------
# Load .env file (no-op if file does not exist)
# ---------------------------------------------------------------------------
load_dotenv()

# ---------------------------------------------------------------------------
# Project root directory (parent of postplanner/)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


# ===========================================================================
# POSTING WINDOWS
# ===========================================================================


@dataclass(frozen=True)
class PostingWindow:
    """
    Time-of-day range in which a post may be scheduled.

    Both ends are inclusive and given as ``HH:MM`` (24-hour) strings in
    the business timezone.
    """

    earliest: str
    latest: str

    def __post_init__(self) -> None:
        try:
            start = time_to_minutes(self.earliest)
            end = time_to_minutes(self.latest)
        except ParseError as exc:
            raise ConfigurationError(f"Invalid posting window: {exc}") from exc
        if start > end:
            raise ConfigurationError(
                f"Posting window earliest {self.earliest} is after latest {self.latest}"
            )

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.earliest)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.latest)

    def describe(self) -> str:
        if self.start_minutes == self.end_minutes:
            return f"{minutes_to_time(self.start_minutes)} (fixed)"
        return f"{self.earliest}-{self.latest}"


# Used whenever a platform or profile has no window configured.
DEFAULT_POSTING_WINDOW = PostingWindow("08:00", "20:00")


# ===========================================================================
# INDUSTRY PROFILES
# ===========================================================================


@dataclass(frozen=True)
class IndustryProfile:
    """
    Business-type specific posting configuration.

    Attributes:
        id: Profile identifier (e.g. ``"restaurant"``).
        label: Display name.
        recommended_cadence: Posts per week by platform (high end of the
            recommended range).
        windows: ``platform -> day type ("weekday"/"weekend") -> windows``.
            When a day type lists several windows, the TimeAssigner picks one
            deterministically per date.
    """

    id: str
    label: str
    recommended_cadence: Dict[str, int] = field(default_factory=dict)
    windows: Dict[str, Dict[str, List[PostingWindow]]] = field(default_factory=dict)

    def windows_for(self, platform: str, day_type: str) -> List[PostingWindow]:
        """Windows for *platform* on *day_type*; empty when not configured."""
        return list(self.windows.get(platform, {}).get(day_type, []))


def _meal_windows() -> Dict[str, List[PostingWindow]]:
    return {
        "weekday": [PostingWindow("11:00", "13:00"), PostingWindow("16:30", "18:30")],
        "weekend": [PostingWindow("09:30", "11:00")],
    }


def _bar_windows() -> Dict[str, List[PostingWindow]]:
    return {
        "weekday": [PostingWindow("16:00", "18:00"), PostingWindow("18:30", "21:00")],
        "weekend": [PostingWindow("11:00", "13:00")],
    }


INDUSTRY_PROFILES: Dict[str, IndustryProfile] = {
    "restaurant": IndustryProfile(
        id="restaurant",
        label="Restaurant",
        recommended_cadence={"instagram": 7, "facebook": 6},
        windows={"instagram": _meal_windows(), "facebook": _meal_windows()},
    ),
    "bar_brewery": IndustryProfile(
        id="bar_brewery",
        label="Bar / Brewery",
        recommended_cadence={"instagram": 6, "facebook": 5},
        windows={"instagram": _bar_windows(), "facebook": _bar_windows()},
    ),
}

DEFAULT_INDUSTRY = "restaurant"


def get_industry_profile(industry_id: Optional[str] = None) -> IndustryProfile:
    """
    Get an industry profile by ID.

    Unknown, empty, or legacy values fall back to the ``restaurant`` profile.
    """
    if not industry_id or industry_id not in INDUSTRY_PROFILES:
        return INDUSTRY_PROFILES[DEFAULT_INDUSTRY]
    return INDUSTRY_PROFILES[industry_id]


# ===========================================================================
# WEEKDAY PRIORITY
# Keys follow ``date.weekday()`` (Monday == 0).  Higher = better engagement.
# ===========================================================================

DEFAULT_DAY_PRIORITY: Dict[int, int] = {
    4: 7,  # Friday - weekend planning
    3: 6,  # Thursday - dinner planning searches
    2: 5,  # Wednesday - mid-week engagement
    5: 4,  # Saturday - brunch crowd
    6: 3,  # Sunday - family dinner planning
    1: 2,  # Tuesday
    0: 1,  # Monday
}


# ===========================================================================
# GLOBAL SETTINGS
# ===========================================================================


@dataclass
class Settings:
    """
    Global application settings.

    Loaded from ``config/settings.yaml`` when available, falling back to
    sensible defaults. Environment variables override YAML values for
    deployment-specific configuration.
    """

    # Single fixed business timezone
    timezone: str = "America/Denver"

    # Platform assumed for legacy keys without a platform segment
    default_platform: str = "facebook"

    # Industry profile used for posting windows
    industry: str = DEFAULT_INDUSTRY

    # Apply step: maximum in-flight writes
    apply_concurrency: int = 3

    # How many skipped keys to list before "+N more"
    skipped_preview_limit: int = 5

    # Logging
    log_level: str = "INFO"

    # Weekday ranking for the SlotPlanner
    day_priority: Dict[int, int] = field(
        default_factory=lambda: dict(DEFAULT_DAY_PRIORITY)
    )

    # Fallback posting window
    default_window: PostingWindow = DEFAULT_POSTING_WINDOW

    @property
    def industry_profile(self) -> IndustryProfile:
        return get_industry_profile(self.industry)

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a YAML file.

        If the file does not exist, returns an instance with all defaults.
        Environment variables override YAML values for specific keys.

        Args:
            path: Path to the YAML file. Defaults to
                ``<PROJECT_ROOT>/config/settings.yaml``.

        Returns:
            Populated Settings instance.

        Raises:
            ConfigurationCorruptedError: If the YAML file exists but cannot
                be parsed.
            ConfigurationError: If a value is invalid.
        """
        path = path or PROJECT_ROOT / "config" / "settings.yaml"

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationCorruptedError(
                    f"Failed to parse settings YAML at {path}: {exc}"
                ) from exc
            if not isinstance(data, dict):
                raise ConfigurationCorruptedError(
                    f"Settings YAML at {path} must be a mapping, got {type(data).__name__}"
                )

        # -----------------------------------------------------------------
        # Day priority (YAML keys may be strings)
        # -----------------------------------------------------------------
        day_priority = dict(DEFAULT_DAY_PRIORITY)
        for key, value in (data.get("day_priority") or {}).items():
            try:
                weekday = int(key)
            except (ValueError, TypeError) as exc:
                raise ConfigurationError(
                    f"Invalid day_priority key '{key}': expected 0-6 (Monday=0)"
                ) from exc
            if not 0 <= weekday <= 6:
                raise ConfigurationError(
                    f"Invalid day_priority key '{key}': expected 0-6 (Monday=0)"
                )
            day_priority[weekday] = int(value)

        # -----------------------------------------------------------------
        # Default posting window
        # -----------------------------------------------------------------
        window_data = data.get("default_window") or {}
        default_window = DEFAULT_POSTING_WINDOW
        if window_data:
            default_window = PostingWindow(
                earliest=window_data.get("earliest", DEFAULT_POSTING_WINDOW.earliest),
                latest=window_data.get("latest", DEFAULT_POSTING_WINDOW.latest),
            )

        settings = cls(
            timezone=data.get("timezone", "America/Denver"),
            default_platform=data.get("default_platform", "facebook"),
            industry=data.get("industry", DEFAULT_INDUSTRY),
            apply_concurrency=data.get("apply_concurrency", 3),
            skipped_preview_limit=data.get("skipped_preview_limit", 5),
            log_level=data.get("log_level", "INFO"),
            day_priority=day_priority,
            default_window=default_window,
        )
        settings._apply_env_overrides()

        if settings.apply_concurrency < 1:
            raise ConfigurationError(
                f"apply_concurrency must be at least 1, got {settings.apply_concurrency}"
            )
        if settings.industry not in INDUSTRY_PROFILES:
            logger.warning(
                "Unknown industry profile '%s', falling back to '%s'",
                settings.industry,
                DEFAULT_INDUSTRY,
            )
        return settings

    def _apply_env_overrides(self) -> None:
        """Override settings from environment variables if set."""
        env_overrides = {
            "PLANNER_TIMEZONE": ("timezone", str),
            "PLANNER_DEFAULT_PLATFORM": ("default_platform", str),
            "PLANNER_INDUSTRY": ("industry", str),
            "PLANNER_APPLY_CONCURRENCY": ("apply_concurrency", int),
            "PLANNER_LOG_LEVEL": ("log_level", str),
        }
        for env_key, (attr_name, cast_fn) in env_overrides.items():
            env_val = os.environ.get(env_key)
            if env_val is not None:
                try:
                    setattr(self, attr_name, cast_fn(env_val))
                except (ValueError, TypeError) as exc:
                    raise ConfigurationError(
                        f"Invalid value for env var {env_key}='{env_val}': {exc}"
                    ) from exc


# ===========================================================================
# SINGLETON SETTINGS ACCESSOR
# ===========================================================================

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global Settings singleton.

    On first call, loads from ``config/settings.yaml`` (or defaults).
    Subsequent calls return the cached instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_yaml()
    return _settings_instance


def reset_settings() -> None:
    """Reset the cached Settings singleton (tests, config reloads)."""
    global _settings_instance
    _settings_instance = None


# ===========================================================================
# ENVIRONMENT VARIABLE VALIDATION
# ===========================================================================

# Needed only when records are persisted through SupabasePostStore
REQUIRED_ENV_VARS: List[str] = [
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]


def validate_env(strict: bool = True) -> Dict[str, bool]:
    """
    Validate that required environment variables are set.

    Args:
        strict: If ``True``, raise ``ConfigurationError`` when any required
            variable is missing. If ``False``, return the status dict
            without raising.

    Returns:
        Dict mapping variable name to presence status (``True`` if set).

    Raises:
        ConfigurationError: If ``strict=True`` and required vars are missing.
    """
    status: Dict[str, bool] = {}
    missing: List[str] = []

    for var in REQUIRED_ENV_VARS:
        present = bool(os.environ.get(var))
        status[var] = present
        if not present:
            missing.append(var)

    if strict and missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
    return status


# ===========================================================================
# PUBLIC API
# ===========================================================================

__all__ = [
    "PostingWindow",
    "DEFAULT_POSTING_WINDOW",
    "IndustryProfile",
    "INDUSTRY_PROFILES",
    "DEFAULT_INDUSTRY",
    "get_industry_profile",
    "DEFAULT_DAY_PRIORITY",
    "Settings",
    "get_settings",
    "reset_settings",
    "REQUIRED_ENV_VARS",
    "validate_env",
]
