from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from captionbatch.utils.logging import get_logger

log = get_logger(__name__)


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class EffectType(str, Enum):
    NONE = "none"
    SLIDE = "slide"
    FADE = "fade"


def _coerce_alignment(value: Any, field_name: str) -> Any:
    if isinstance(value, Alignment):
        return value
    key = str(value).strip().lower()
    if key not in {a.value for a in Alignment}:
        log.warning("Unknown %s '%s'; using center.", field_name, value)
        return Alignment.CENTER
    return key


class StyleConfig(BaseModel):
    """
    How a caption looks and animates.

    Box, shadow and border toggle independently. A fade effect replaces the
    constant `text_opacity` alpha.
    """

    model_config = ConfigDict(frozen=True)

    # ------------------------------------------------------------------
    # Font
    # ------------------------------------------------------------------
    font_file: str = Field(default="Arial.ttf", description="Path to a TrueType font file.")
    font_size: int = Field(default=30, gt=0, description="Font size in points.")
    font_color: str = Field(default="white", description="Color name or hex code.")
    text_opacity: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Constant text opacity; ignored when effect_type is fade.",
    )

    # ------------------------------------------------------------------
    # Position
    # ------------------------------------------------------------------
    bottom_margin: int = Field(default=250, description="Distance from the bottom edge in pixels.")
    text_alignment: Alignment = Field(default=Alignment.CENTER, description="left, center or right.")
    left_margin: int = Field(default=50, description="Horizontal margin for left/right alignment.")
    line_spacing: float = Field(default=0.7, description="Spacing between lines of multi-line text.")
    text_block_alignment: Alignment = Field(
        default=Alignment.CENTER,
        description="How lines of a multi-line block align to each other.",
    )

    # ------------------------------------------------------------------
    # Decorations
    # ------------------------------------------------------------------
    enable_box: bool = False
    box_color: str = "black@0.5"
    box_border: int = Field(default=10, ge=0, description="Box padding in pixels.")

    enable_shadow: bool = False
    shadow_x: int = 4
    shadow_y: int = 4
    shadow_color: str = "black"

    enable_border: bool = True
    border_width: int = Field(default=3, ge=0)
    border_color: str = "black"

    # ------------------------------------------------------------------
    # Animation
    # ------------------------------------------------------------------
    effect_type: EffectType = Field(default=EffectType.FADE, description="none, slide or fade.")
    animation_speed: int = Field(
        default=250,
        description="Slide speed in pixels per second (the slide ramp itself is fixed at 1s).",
    )
    fade_duration: float = Field(default=0.5, gt=0, description="Fade in/out duration in seconds.")
    output_duration: float | None = Field(
        default=None,
        gt=0,
        description="Trim output to this many seconds; unset keeps the full length.",
    )

    @field_validator("text_alignment", "text_block_alignment", mode="before")
    @classmethod
    def _fallback_to_center(cls, value: Any, info) -> Any:  # noqa: ANN001
        return _coerce_alignment(value, info.field_name)

    @field_validator("effect_type", mode="before")
    @classmethod
    def _normalize_effect(cls, value: Any) -> Any:
        if isinstance(value, EffectType):
            return value
        return str(value).strip().lower()


class Settings(BaseSettings):
    """
    Runtime configuration for captionbatch.

    Loaded from environment variables with the `CAPTIONBATCH_` prefix and an
    optional `.env`. Style options nest under `style`, e.g.
    `CAPTIONBATCH_STYLE__FONT_SIZE=40`. Instances are frozen; CLI overrides
    are passed as constructor keywords.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPTIONBATCH_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    output_dir: str = Field(default="./output", description="Directory for rendered videos.")
    output_suffix: str = Field(
        default="_text",
        description="Appended to the input stem when no custom output name is given.",
    )

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------
    video_width: int = Field(default=1080, gt=0, description="Fallback width when CSV and probe give none.")
    video_height: int = Field(default=1350, gt=0, description="Fallback height when CSV and probe give none.")

    # ------------------------------------------------------------------
    # Batch / single-file jobs
    # ------------------------------------------------------------------
    input_directory: str = Field(default="./input", description="Folder scanned in batch mode.")
    input_video: str = Field(default="input.mp4", description="Source video in single-file mode.")
    output_video: str = Field(default="testoutput.mp4", description="Output name in single-file mode.")
    text: str = Field(
        default="*Interest accrues from purchase date\nbut is waived if paid in full within X months",
        description="Caption used by batch and single-file modes.",
    )
    start_time: float = Field(default=2.0, ge=0, description="Caption start in seconds.")
    end_time: float = Field(default=10.0, ge=0, description="Caption end in seconds.")

    style: StyleConfig = Field(default_factory=StyleConfig)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str | None = Field(
        default=None,
        description="Logging level (DEBUG, INFO, WARNING, ERROR). Unset: WARNING, or DEBUG with --verbose.",
    )

    @model_validator(mode="after")
    def _check_window(self) -> "Settings":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self

    def to_public_dict(self) -> dict:
        return self.model_dump(mode="json")
