# pawsheets/styles.py
"""
Card style configuration.

A StyleConfig is always complete: it is built by merging overrides onto
DEFAULT_STYLES and validating the result. Presets are partial overrides
merged the same way, so there is one code path for every update.
"""

import logging
import re
from types import MappingProxyType
from typing import Any, Dict, Literal, Mapping, Optional

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

Layout = Literal["top-image", "left-image", "right-image"]
Arrangement = Literal["column", "row", "grid"]
ObjectFit = Literal["cover", "contain", "fill", "none", "scale-down"]
TextAlign = Literal["left", "center", "right", "justify"]
SizePresetName = Literal["small", "medium", "large"]

CARD_SHADOW = "0 6px 18px rgba(0,0,0,0.08)"
FALLBACK_BORDER_COLOR = "#cccccc"

_CSS_ALPHA = re.compile(r"^(?:rgba|hsla)\(([^)]*)\)$", re.IGNORECASE)
_CSS_BREAKOUT = re.compile(r"[;{}<>\\]|/\*|url\s*\(|expression\s*\(", re.IGNORECASE)


def is_transparent(color: str) -> bool:
    """True when a CSS color resolves to zero alpha."""
    value = (color or "").strip().lower()
    if value == "transparent":
        return True
    m = _CSS_ALPHA.match(value)
    if m:
        parts = [p.strip() for p in re.split(r"[,/]", m.group(1)) if p.strip()]
        if len(parts) == 4:
            alpha = parts[3]
            try:
                if alpha.endswith("%"):
                    return float(alpha[:-1]) == 0
                return float(alpha) == 0
            except ValueError:
                return False
        return False
    try:
        rgba = ImageColor.getcolor(value, "RGBA")
    except ValueError:
        return False
    return rgba[3] == 0


class StyleConfig(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    layout: Layout = "top-image"
    card_arrangement: Arrangement = "grid"
    card_width: int = Field(320, ge=0)
    card_height: int = Field(400, ge=0)
    image_width: int = Field(120, ge=0)
    image_height: int = Field(120, ge=0)
    image_object_fit: ObjectFit = "cover"
    background_color: str = "#ffffff"
    text_color: str = "#333333"
    border_color: str = "#dddddd"
    border_width: int = Field(1, ge=0)
    border_radius: int = Field(8, ge=0)
    font_family: str = "Arial, sans-serif"
    font_size_primary: int = Field(14, ge=1)
    font_size_secondary: int = Field(12, ge=1)
    text_align: TextAlign = "left"
    padding: int = Field(12, ge=0)
    gap: int = Field(8, ge=0)
    card_shadow: bool = True
    card_button_text: str = ""
    card_button_url: str = Field("", alias="cardButtonURL")
    size_preset: Optional[SizePresetName] = "medium"

    @field_validator("background_color", "text_color", "border_color", "font_family")
    @classmethod
    def _single_css_value(cls, value: str, info: ValidationInfo) -> str:
        # these land inside an inline style attribute in exported markup
        if _CSS_BREAKOUT.search(value):
            raise ValueError("must be a single CSS value")
        if info.field_name == "border_color" and is_transparent(value):
            return FALLBACK_BORDER_COLOR
        return value

    @property
    def shadow(self) -> str:
        return CARD_SHADOW if self.card_shadow else "none"

    def to_dict(self) -> Dict[str, Any]:
        """Stored/wire shape with camelCase keys."""
        return self.model_dump(by_alias=True)


DEFAULT_STYLES = StyleConfig()

_ALIASES = {
    name: (info.alias or name) for name, info in StyleConfig.model_fields.items()
}

SIZE_KEYS = ("cardWidth", "cardHeight", "imageWidth", "imageHeight", "gap")

SIZE_PRESETS: Mapping[str, Mapping[str, int]] = MappingProxyType({
    "small": MappingProxyType({"cardWidth": 240, "cardHeight": 300, "imageWidth": 80, "imageHeight": 80, "gap": 6}),
    "medium": MappingProxyType({"cardWidth": 320, "cardHeight": 400, "imageWidth": 120, "imageHeight": 120, "gap": 8}),
    "large": MappingProxyType({"cardWidth": 400, "cardHeight": 500, "imageWidth": 160, "imageHeight": 160, "gap": 10}),
})

THEME_KEYS = ("backgroundColor", "textColor", "borderColor", "fontFamily")

THEME_PRESETS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "light": MappingProxyType({
        "backgroundColor": "#ffffff",
        "textColor": "#333333",
        "borderColor": "#dddddd",
        "fontFamily": "Arial, sans-serif",
    }),
    "dark": MappingProxyType({
        "backgroundColor": "#1e1e1e",
        "textColor": "#f5f5f5",
        "borderColor": "#444444",
        "fontFamily": "Inter, sans-serif",
    }),
    "navy": MappingProxyType({
        "backgroundColor": "#001f3f",
        "textColor": "#FFD700",
        "borderColor": "#FFD700",
        "fontFamily": "Verdana, sans-serif",
    }),
    "paper": MappingProxyType({
        "backgroundColor": "#fdf6e3",
        "textColor": "#5b4636",
        "borderColor": "#d8c7a1",
        "fontFamily": "Georgia, serif",
    }),
})

FONT_FAMILIES = (
    "Arial, sans-serif",
    "Verdana, sans-serif",
    "Georgia, serif",
    "Inter, sans-serif",
)


def _by_alias(overrides: Mapping[str, Any]) -> Dict[str, Any]:
    # accept both cardWidth and card_width spellings
    return {_ALIASES.get(k, k): v for k, v in overrides.items()}


def build_styles(overrides: Optional[Mapping[str, Any]] = None,
                 base: StyleConfig = DEFAULT_STYLES) -> StyleConfig:
    """Merge overrides onto base and validate. Raises ValidationError on bad values."""
    data = base.to_dict()
    data.update(_by_alias(overrides or {}))
    return StyleConfig.model_validate(data)


def coerce_styles(raw: Optional[Mapping[str, Any]]) -> StyleConfig:
    """
    Build a config from a stored blob, dropping keys whose values don't
    validate so they fall back to their defaults.
    """
    data = _by_alias(raw or {})
    for _ in range(len(data) + 1):
        try:
            return build_styles(data)
        except ValidationError as e:
            bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
            if not bad:
                break
            logger.warning("Dropping invalid style keys: %s", sorted(map(str, bad)))
            for key in bad:
                data.pop(key, None)
    return DEFAULT_STYLES


def apply_size_preset(styles: StyleConfig, name: str) -> StyleConfig:
    """Overwrite all five size keys together."""
    if name not in SIZE_PRESETS:
        raise KeyError(f"Unknown size preset: {name}")
    overrides = dict(SIZE_PRESETS[name])
    overrides["sizePreset"] = name
    return build_styles(overrides, base=styles)


def apply_theme(styles: StyleConfig, name: str) -> StyleConfig:
    if name not in THEME_PRESETS:
        raise KeyError(f"Unknown theme: {name}")
    return build_styles(THEME_PRESETS[name], base=styles)


def apply_theme_styles(styles: StyleConfig, theme_styles: Mapping[str, Any]) -> StyleConfig:
    """Apply a saved user theme, taking only the theme keys from its blob."""
    data = _by_alias(theme_styles)
    return build_styles({k: data[k] for k in THEME_KEYS if k in data}, base=styles)
