# pawsheets/layout.py
"""
Layout decisions for a set of cards.

plan_layout() is the only place where style options are turned into
layout choices (container kind, card direction, image size, which children
exist). tree.py and markup.py both walk the returned LayoutPlan and never
look at the StyleConfig themselves, so the live preview and the exported
markup cannot disagree.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union
from urllib.parse import urlsplit

from pawsheets.schemas import CardProjection
from pawsheets.styles import StyleConfig

NO_DATA_TEXT = "No data available for cards"

# fixed inner spacing of the field stack
FIELD_STACK_GAP = 6
FIELD_ROW_GAP = 4
LABEL_WEIGHT = 700

BUTTON_BACKGROUND = "#001f3f"
BUTTON_COLOR = "#fff"
BUTTON_PADDING = "6px 12px"
BUTTON_RADIUS = 4
BUTTON_FONT_SIZE = 14

FULL_WIDTH = "100%"

SAFE_URL_SCHEMES = ("", "http", "https", "mailto")
_URL_IGNORED = re.compile(r"[\x00-\x20\x7f]")

# px as int, or a percentage string
Length = Union[int, str]

CARD_DIRECTIONS = {
    "top-image": "column",
    "left-image": "row",
    "right-image": "row-reverse",
}


@dataclass(frozen=True)
class ContainerPlan:
    display: str                      # "grid" | "flex"
    gap: int
    direction: Optional[str] = None   # flex only
    grid_min_width: Optional[int] = None  # grid only

    @property
    def grid_template(self) -> Optional[str]:
        if self.display != "grid":
            return None
        return f"repeat(auto-fill, minmax({self.grid_min_width}px, 1fr))"


@dataclass(frozen=True)
class CardBox:
    background_color: str
    border_width: int
    border_color: str
    border_radius: int
    padding: int
    shadow: str
    width: int
    min_height: int
    font_family: str
    text_color: str
    text_align: str
    gap: int


@dataclass(frozen=True)
class ImagePlan:
    src: str
    width: Length
    height: int
    object_fit: str
    border_radius: int


@dataclass(frozen=True)
class FieldPlan:
    header: str
    value: str
    label_size: int
    value_size: int

    @property
    def label(self) -> str:
        return f"{self.header}:"


@dataclass(frozen=True)
class ButtonPlan:
    text: str
    href: str


@dataclass(frozen=True)
class CardPlan:
    direction: str
    box: CardBox
    image: Optional[ImagePlan]
    fields: List[FieldPlan] = field(default_factory=list)
    button: Optional[ButtonPlan] = None


@dataclass(frozen=True)
class LayoutPlan:
    container: ContainerPlan
    cards: List[CardPlan] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.cards


def plan_container(styles: StyleConfig) -> ContainerPlan:
    if styles.card_arrangement == "grid":
        return ContainerPlan(display="grid", gap=styles.gap, grid_min_width=styles.card_width)
    return ContainerPlan(display="flex", gap=styles.gap, direction=styles.card_arrangement)


def plan_card(card: CardProjection, styles: StyleConfig) -> CardPlan:
    box = CardBox(
        background_color=styles.background_color,
        border_width=styles.border_width,
        border_color=styles.border_color,
        border_radius=styles.border_radius,
        padding=styles.padding,
        shadow=styles.shadow,
        width=styles.card_width,
        min_height=styles.card_height,
        font_family=styles.font_family,
        text_color=styles.text_color,
        text_align=styles.text_align,
        gap=styles.gap,
    )

    image = None
    if card.image_field.value:
        image = ImagePlan(
            src=card.image_field.value,
            width=FULL_WIDTH if styles.layout == "top-image" else styles.image_width,
            height=styles.image_height,
            object_fit=styles.image_object_fit,
            border_radius=styles.border_radius,
        )

    fields = [
        FieldPlan(
            header=f.header,
            value=f.value,
            label_size=styles.font_size_secondary,
            value_size=styles.font_size_primary,
        )
        for f in card.fields
    ]

    button = None
    if styles.card_button_text:
        button = ButtonPlan(text=styles.card_button_text, href=safe_href(styles.card_button_url))

    return CardPlan(
        direction=CARD_DIRECTIONS[styles.layout],
        box=box,
        image=image,
        fields=fields,
        button=button,
    )


def plan_layout(cards: Sequence[CardProjection], styles: StyleConfig) -> LayoutPlan:
    return LayoutPlan(
        container=plan_container(styles),
        cards=[plan_card(c, styles) for c in cards],
    )


def safe_href(url: str) -> str:
    """Button link, or "#" for empty links and schemes other than http(s)/mailto."""
    if not url or not url.strip():
        return "#"
    # browsers ignore control chars and whitespace when reading the scheme
    try:
        scheme = urlsplit(_URL_IGNORED.sub("", url)).scheme.lower()
    except ValueError:
        return "#"
    return url.strip() if scheme in SAFE_URL_SCHEMES else "#"


def css_length(value: Length) -> str:
    return value if isinstance(value, str) else f"{value}px"
