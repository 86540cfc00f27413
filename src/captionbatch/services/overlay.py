"""
drawtext filter construction.

Position, opacity and visibility are built as expression trees
(`captionbatch.utils.expr`) and only turned into filter text when the
FilterExpression is rendered. Nothing here touches the filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from captionbatch.config.settings import Alignment, EffectType, StyleConfig
from captionbatch.domain.jobs import ResolvedCaptionJob
from captionbatch.utils.expr import TEXT_W, T, W, Expr, Num, between, format_number, piecewise
from captionbatch.utils.ffmpeg import escape_drawtext_text, escape_filter_value

SLIDE_DURATION = 1.0

OptionValue = Union[str, int, float, Expr]


def _value_text(value: OptionValue) -> str:
    if isinstance(value, Expr):
        return value.render()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


@dataclass(frozen=True)
class FilterExpression:
    """An ordered drawtext option list; `render()` gives the -vf argument."""

    options: tuple[tuple[str, OptionValue], ...]

    def option(self, key: str) -> OptionValue | None:
        for name, value in self.options:
            if name == key:
                return value
        return None

    @property
    def keys(self) -> list[str]:
        return [name for name, _ in self.options]

    def render(self) -> str:
        parts = []
        for name, value in self.options:
            text = _value_text(value)
            if name == "text":
                text = escape_drawtext_text(text)
            parts.append(f"{name}={escape_filter_value(text)}")
        return "drawtext=" + ":".join(parts)

    def __str__(self) -> str:
        return self.render()


def horizontal_base(style: StyleConfig) -> Expr:
    if style.text_alignment is Alignment.LEFT:
        return Num(style.left_margin)
    if style.text_alignment is Alignment.RIGHT:
        return W - TEXT_W - style.left_margin
    return (W - TEXT_W) / 2


def slide_position(base: Expr, start: float) -> Expr:
    """Off-screen left before start, linear slide-in for SLIDE_DURATION, then hold."""
    ramp = -W + (base + W) * (T - start) / SLIDE_DURATION
    return piecewise(T, [(start, -W), (start + SLIDE_DURATION, ramp)], base)


def fade_breakpoints(start: float, end: float, fade: float) -> tuple[float, float]:
    """
    End of the fade-in and start of the fade-out.

    When the two ramps would overlap both breakpoints move to the window
    midpoint: the ramps meet there and the peak stays below 1.
    """
    fade_in_end = start + fade
    fade_out_start = end - fade
    if fade_in_end > fade_out_start:
        midpoint = (start + end) / 2
        return midpoint, midpoint
    return fade_in_end, fade_out_start


def fade_opacity(start: float, end: float, fade: float) -> Expr:
    fade_in_end, fade_out_start = fade_breakpoints(start, end, fade)
    return piecewise(
        T,
        [
            (start, 0),
            (fade_in_end, (T - start) / fade),
            (fade_out_start, 1),
            (end, (end - T) / fade),
        ],
        0,
    )


def visibility_window(start: float, end: float) -> Expr:
    return between(T, start, end)


def build_filter(job: ResolvedCaptionJob, style: StyleConfig) -> FilterExpression:
    base_x = horizontal_base(style)
    if style.effect_type is EffectType.SLIDE:
        x: Expr = slide_position(base_x, job.start_time)
    else:
        x = base_x

    options: list[tuple[str, OptionValue]] = [
        ("fontfile", style.font_file),
        ("text", job.text),
        ("fontsize", style.font_size),
        ("fontcolor", style.font_color),
        ("x", x),
        ("y", job.height - style.bottom_margin),
        ("line_spacing", style.line_spacing),
        ("text_align", style.text_block_alignment.value),
    ]

    if style.enable_border:
        options += [("borderw", style.border_width), ("bordercolor", style.border_color)]

    if style.enable_shadow:
        options += [
            ("shadowx", style.shadow_x),
            ("shadowy", style.shadow_y),
            ("shadowcolor", style.shadow_color),
        ]

    if style.effect_type is EffectType.FADE:
        options.append(("alpha", fade_opacity(job.start_time, job.end_time, style.fade_duration)))
    elif style.text_opacity != 1.0:
        options.append(("alpha", Num(style.text_opacity)))

    if style.enable_box:
        options += [
            ("box", 1),
            ("boxcolor", style.box_color),
            ("boxborderw", style.box_border),
        ]

    options.append(("enable", visibility_window(job.start_time, job.end_time)))
    return FilterExpression(options=tuple(options))
