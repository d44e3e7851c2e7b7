"""Configuration handling for gitpick"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_PREFIX = "GITPICK_"

THEMES = ["auto", "dark", "light"]


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("yes", "y", "true", "1")


@dataclass
class Config:
    """Settings read from the environment, validated on construction."""

    # Thresholds
    cleanup_days: int = 7
    stale_months: int = 3

    # Previews
    theme: str = "auto"

    # Branch creation
    feature_branch_prefix: str = "feature/"
    no_issue_parsing: bool = False
    issue_fallback: str = "NOISSUE"

    def __post_init__(self):
        self._validate_cleanup_days()
        self._validate_stale_months()
        self._validate_theme()
        self._validate_issue_fallback()

    def _validate_cleanup_days(self):
        if self.cleanup_days < 1:
            raise ValueError(f"cleanup_days must be positive, got {self.cleanup_days}")

    def _validate_stale_months(self):
        if self.stale_months < 1:
            raise ValueError(f"stale_months must be positive, got {self.stale_months}")

    def _validate_theme(self):
        self.theme = self.theme.strip().lower() or "auto"
        if self.theme not in THEMES:
            raise ValueError(f"theme must be one of {THEMES}, got '{self.theme}'")

    def _validate_issue_fallback(self):
        if not self.issue_fallback or not self.issue_fallback.strip():
            raise ValueError("issue_fallback cannot be empty")
        self.issue_fallback = self.issue_fallback.strip()

    @property
    def delta_args(self) -> list[str]:
        """Arguments passed to delta when rendering diffs."""
        if self.theme == "light":
            return ["--light"]
        if self.theme == "dark":
            return ["--dark"]
        return []

    @property
    def bat_args(self) -> list[str]:
        """Arguments passed to bat when rendering untracked files."""
        if self.theme == "light":
            return ["--theme=GitHub"]
        if self.theme == "dark":
            return ["--theme=Dracula"]
        return []

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Create Config from ``GITPICK_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict = {}

        for key, name in (("cleanup_days", "CLEANUP_DAYS"), ("stale_months", "STALE_MONTHS")):
            raw = env.get(ENV_PREFIX + name)
            if raw:
                try:
                    values[key] = int(raw)
                except ValueError as err:
                    raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'") from err

        if env.get(ENV_PREFIX + "THEME"):
            values["theme"] = env[ENV_PREFIX + "THEME"]
        if env.get(ENV_PREFIX + "FEATURE_BRANCH_PREFIX"):
            values["feature_branch_prefix"] = env[ENV_PREFIX + "FEATURE_BRANCH_PREFIX"]
        if env.get(ENV_PREFIX + "CREATE_NO_ISSUE_PARSING"):
            values["no_issue_parsing"] = _env_bool(env[ENV_PREFIX + "CREATE_NO_ISSUE_PARSING"])
        if env.get(ENV_PREFIX + "CREATE_ISSUE_PARSING_FALLBACK"):
            values["issue_fallback"] = env[ENV_PREFIX + "CREATE_ISSUE_PARSING_FALLBACK"]

        return cls(**values)
