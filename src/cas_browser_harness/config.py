"""Configuration models for the CAS browser harness."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LaunchOptions(BaseModel):
    """Settings used when starting a browser process."""

    trust_all_certificates: bool = Field(
        default=False,
        description="Accept self-signed or otherwise invalid TLS certificates.",
    )
    headless: bool = True
    window_size: tuple[int, int] = (1280, 1024)
    extra_headers: dict[str, str] = Field(default_factory=dict)
    proxy: Optional[str] = None
    channel: Optional[str] = Field(
        default=None,
        description="Installed browser channel (e.g. 'chrome') instead of the bundled Chromium.",
    )
    slow_mo_ms: int = 0
    args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
    )

    @model_validator(mode="after")
    def _check_window(self) -> "LaunchOptions":
        width, height = self.window_size
        if width <= 0 or height <= 0:
            raise ValueError("window_size must be positive")
        return self


class WaitPolicy(BaseModel):
    """Bounds for one polled wait."""

    timeout: float = Field(default=10.0, gt=0)
    interval: float = Field(default=0.05, gt=0)
    backoff: float = Field(default=1.5, ge=1.0)
    max_interval: float = Field(default=0.5, gt=0)

    def with_timeout(self, timeout: Optional[float]) -> "WaitPolicy":
        if timeout is None:
            return self
        return self.model_copy(update={"timeout": timeout})


class TimeoutSettings(BaseModel):
    """Default ceilings, in seconds, for each kind of operation."""

    navigation: float = Field(default=30.0, gt=0)
    login: float = Field(default=15.0, gt=0)
    login_form: float = Field(default=5.0, gt=0)
    interaction: float = Field(default=5.0, gt=0)
    assertion: WaitPolicy = Field(default_factory=WaitPolicy)

    def poll(self, timeout: float) -> WaitPolicy:
        """Return the assertion polling policy with a different ceiling."""

        return self.assertion.with_timeout(timeout)


class LoginSelectors(BaseModel):
    """Selectors fixed by the CAS login and MFA views.

    ``success`` is the banner rendered by the generic success view,
    ``rejected`` the panel listing authentication errors and ``challenge`` the
    one-time token field of the simple MFA provider.
    """

    form: str = "#fm1"
    username: str = "#username"
    password: str = "#password"
    submit: str = "#fm1 [type=submit]"
    success: str = "#content .banner-success"
    rejected: str = "#loginErrorsPanel"
    challenge: str = "#token"
    challenge_submit: str = "#fm1 [type=submit]"


class HarnessSettings(BaseSettings):
    """Top-level configuration shared by scenarios."""

    model_config = SettingsConfigDict(
        env_prefix="CAS_HARNESS_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    base_url: str = "https://localhost:8443/cas"
    backend: str = Field(default="playwright")
    launch: LaunchOptions = Field(default_factory=LaunchOptions)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    selectors: LoginSelectors = Field(default_factory=LoginSelectors)
    log_level: str = "INFO"

    def login_url(self, **params: str) -> str:
        """Build the login endpoint URL, e.g. ``login_url(authn_method="mfa-simple")``."""

        url = f"{self.base_url.rstrip('/')}/login"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url


def load_settings(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> HarnessSettings:
    """Load settings from an optional YAML file, the environment and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    settings = HarnessSettings(**data, **settings_kwargs)
    if not data:
        return settings

    merged = settings.model_dump(mode="python")
    _deep_update(merged, data)
    return HarnessSettings.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
