"""Application settings loaded from .env via Pydantic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.viewport import CanvasPolicy


logger = logging.getLogger(__name__)


class ComposerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PIRADS_COMPOSER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    asset_root: Path = Path("assets")
    output_root: Path = Path("outputs")
    diagram_image: str = "new_prostate_diagram.png"

    eraser_radius: float = Field(default=10.0, gt=0)
    resize_sensitivity: float = Field(default=0.3, gt=0)
    min_viewport_width: int = Field(default=50, ge=1)
    min_viewport_height: int = Field(default=50, ge=1)
    max_viewport_width: int = Field(default=3000, ge=1)
    max_viewport_height: int = Field(default=2000, ge=1)
    min_element_size: float = Field(default=50.0, gt=0)
    element_handle_size: float = Field(default=8.0, gt=0)
    viewport_handle_size: float = Field(default=16.0, gt=0)
    move_epsilon: float = Field(default=1.0, ge=0)
    presize_tolerance: float = Field(default=10.0, ge=0)

    @field_validator("asset_root", "output_root", mode="before")
    @classmethod
    def _expand_root(cls, value: Path) -> Path:
        return Path(value).expanduser().resolve()

    @field_validator("output_root")
    @classmethod
    def _ensure_output_root(cls, value: Path) -> Path:
        value.mkdir(parents=True, exist_ok=True)
        return value

    @model_validator(mode="after")
    def _check_viewport_bounds(self) -> "ComposerSettings":
        if self.min_viewport_width > self.max_viewport_width:
            raise ValueError("min_viewport_width must not exceed max_viewport_width")
        if self.min_viewport_height > self.max_viewport_height:
            raise ValueError("min_viewport_height must not exceed max_viewport_height")
        return self


_settings: Optional[ComposerSettings] = None


def get_settings() -> ComposerSettings:
    global _settings
    if _settings is None:
        _settings = ComposerSettings()
        if not _settings.asset_root.exists():
            logger.warning(
                "Asset root %s does not exist. Set PIRADS_COMPOSER_ASSET_ROOT in .env "
                "to the directory holding the prostate diagram.",
                _settings.asset_root,
            )
    return _settings


def asset_root() -> Path:
    return get_settings().asset_root


def output_root() -> Path:
    return get_settings().output_root


def resolve_asset_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (asset_root() / path).resolve()


def canvas_policy(settings: Optional[ComposerSettings] = None) -> CanvasPolicy:
    """Build the canvas policy from the configured values."""
    settings = settings or get_settings()
    return CanvasPolicy(
        min_viewport_width=settings.min_viewport_width,
        min_viewport_height=settings.min_viewport_height,
        max_viewport_width=settings.max_viewport_width,
        max_viewport_height=settings.max_viewport_height,
        resize_sensitivity=settings.resize_sensitivity,
        viewport_handle_size=settings.viewport_handle_size,
        element_handle_size=settings.element_handle_size,
        min_element_size=settings.min_element_size,
        move_epsilon=settings.move_epsilon,
        presize_tolerance=settings.presize_tolerance,
    )


def reset_settings_cache() -> None:
    global _settings
    _settings = None
