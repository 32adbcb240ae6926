# pawsheets/tree.py
"""
Live-preview back-end: turns a LayoutPlan into a tree of Element nodes.

Styles are kept the way a UI toolkit holds inline styles: camelCase keys,
plain ints for pixel values. The Streamlit preview and the Pillow raster
preview both read this tree.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from pawsheets.layout import (
    BUTTON_BACKGROUND,
    BUTTON_COLOR,
    BUTTON_FONT_SIZE,
    BUTTON_PADDING,
    BUTTON_RADIUS,
    FIELD_ROW_GAP,
    FIELD_STACK_GAP,
    LABEL_WEIGHT,
    NO_DATA_TEXT,
    CardPlan,
    ContainerPlan,
    FieldPlan,
    ImagePlan,
    LayoutPlan,
)


@dataclass
class Element:
    tag: str
    style: Dict[str, Any] = field(default_factory=dict)
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List["Element"] = field(default_factory=list)
    key: Optional[str] = None

    @property
    def class_name(self) -> str:
        return self.attrs.get("class", "")

    def iter(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            yield from child.iter()

    def find_all(self, tag: Optional[str] = None, class_name: Optional[str] = None) -> List["Element"]:
        return [
            el for el in self.iter()
            if (tag is None or el.tag == tag)
            and (class_name is None or el.class_name == class_name)
        ]

    def find(self, tag: Optional[str] = None, class_name: Optional[str] = None) -> Optional["Element"]:
        found = self.find_all(tag, class_name)
        return found[0] if found else None


def _container(plan: ContainerPlan, children: List[Element]) -> Element:
    style: Dict[str, Any] = {"display": plan.display, "gap": plan.gap}
    if plan.display == "grid":
        style["gridTemplateColumns"] = plan.grid_template
    else:
        style["flexDirection"] = plan.direction
    return Element("div", style=style, attrs={"class": "card-container"}, children=children)


def _image(plan: ImagePlan) -> Element:
    return Element(
        "img",
        style={
            "width": plan.width,
            "height": plan.height,
            "objectFit": plan.object_fit,
            "borderRadius": plan.border_radius,
            "flex": "0 0 auto",
        },
        attrs={"src": plan.src, "alt": "", "class": "card-image"},
    )


def _field(plan: FieldPlan) -> Element:
    return Element(
        "div",
        style={"display": "flex", "gap": FIELD_ROW_GAP, "flexWrap": "wrap", "alignItems": "baseline"},
        attrs={"class": "card-field"},
        children=[
            Element("span", style={"fontWeight": LABEL_WEIGHT, "fontSize": plan.label_size},
                    attrs={"class": "card-label"}, text=plan.label),
            Element("span", style={"fontSize": plan.value_size},
                    attrs={"class": "card-value"}, text=plan.value),
        ],
    )


def _card(plan: CardPlan, index: int) -> Element:
    box = plan.box
    children: List[Element] = []
    if plan.image is not None:
        children.append(_image(plan.image))

    stack = [_field(f) for f in plan.fields]
    if plan.button is not None:
        stack.append(Element(
            "a",
            style={
                "display": "inline-block",
                "padding": BUTTON_PADDING,
                "backgroundColor": BUTTON_BACKGROUND,
                "color": BUTTON_COLOR,
                "textDecoration": "none",
                "borderRadius": BUTTON_RADIUS,
                "marginTop": "auto",
                "textAlign": "center",
                "fontSize": BUTTON_FONT_SIZE,
            },
            attrs={"href": plan.button.href, "target": "_blank",
                   "rel": "noopener noreferrer", "class": "card-button"},
            text=plan.button.text,
        ))
    children.append(Element(
        "div",
        style={"display": "flex", "flexDirection": "column", "gap": FIELD_STACK_GAP, "flex": 1},
        attrs={"class": "card-fields"},
        children=stack,
    ))

    return Element(
        "div",
        style={
            "backgroundColor": box.background_color,
            "border": f"{box.border_width}px solid {box.border_color}",
            "borderRadius": box.border_radius,
            "padding": box.padding,
            "boxShadow": box.shadow,
            "width": box.width,
            "minHeight": box.min_height,
            "boxSizing": "border-box",
            "overflow": "hidden",
            "fontFamily": box.font_family,
            "color": box.text_color,
            "textAlign": box.text_align,
            "display": "flex",
            "flexDirection": plan.direction,
            "gap": box.gap,
            "alignItems": "flex-start",
        },
        attrs={"class": "card"},
        children=children,
        key=str(index),
    )


def build_tree(plan: LayoutPlan) -> Element:
    if plan.is_empty:
        return Element("div", attrs={"class": "no-data"}, text=NO_DATA_TEXT)
    return _container(plan.container, [_card(c, i) for i, c in enumerate(plan.cards)])
