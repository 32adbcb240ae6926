# pawsheets/markup.py
"""Export back-end: serializes a LayoutPlan into self-contained HTML with inline styles."""

from html import escape
from typing import List, Sequence, Tuple

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
    css_length,
)

Declarations = Sequence[Tuple[str, object]]


def css(declarations: Declarations) -> str:
    return " ".join(f"{prop}:{value};" for prop, value in declarations)


def _attr(value: str) -> str:
    return escape(value, quote=True)


def _container_open(plan: ContainerPlan) -> str:
    decls: List[Tuple[str, object]] = [("display", plan.display)]
    if plan.display == "grid":
        decls.append(("grid-template-columns", plan.grid_template))
    else:
        decls.append(("flex-direction", plan.direction))
    decls.append(("gap", f"{plan.gap}px"))
    return f'<div class="card-container" style="{_attr(css(decls))}">'


def _image(plan: ImagePlan) -> str:
    style = css([
        ("width", css_length(plan.width)),
        ("height", f"{plan.height}px"),
        ("object-fit", plan.object_fit),
        ("border-radius", f"{plan.border_radius}px"),
        ("flex", "0 0 auto"),
    ])
    return f'<img class="card-image" src="{_attr(plan.src)}" alt="" style="{_attr(style)}" />'


def _field(plan: FieldPlan) -> str:
    row = css([("display", "flex"), ("gap", f"{FIELD_ROW_GAP}px"),
               ("flex-wrap", "wrap"), ("align-items", "baseline")])
    label = css([("font-weight", LABEL_WEIGHT), ("font-size", f"{plan.label_size}px")])
    value = css([("font-size", f"{plan.value_size}px")])
    return (
        f'<div class="card-field" style="{row}">'
        f'<span class="card-label" style="{label}">{escape(plan.label)}</span>'
        f'<span class="card-value" style="{value}">{escape(plan.value)}</span>'
        f"</div>"
    )


def _card(plan: CardPlan) -> str:
    box = plan.box
    style = css([
        ("background-color", box.background_color),
        ("border", f"{box.border_width}px solid {box.border_color}"),
        ("border-radius", f"{box.border_radius}px"),
        ("padding", f"{box.padding}px"),
        ("box-shadow", box.shadow),
        ("width", f"{box.width}px"),
        ("min-height", f"{box.min_height}px"),
        ("box-sizing", "border-box"),
        ("overflow", "hidden"),
        ("font-family", box.font_family),
        ("color", box.text_color),
        ("text-align", box.text_align),
        ("display", "flex"),
        ("flex-direction", plan.direction),
        ("gap", f"{box.gap}px"),
        ("align-items", "flex-start"),
    ])

    parts = [f'<div class="card" style="{_attr(style)}">']
    if plan.image is not None:
        parts.append(_image(plan.image))

    stack = css([("display", "flex"), ("flex-direction", "column"),
                 ("gap", f"{FIELD_STACK_GAP}px"), ("flex", 1)])
    parts.append(f'<div class="card-fields" style="{stack}">')
    parts.extend(_field(f) for f in plan.fields)
    if plan.button is not None:
        button = css([
            ("display", "inline-block"),
            ("padding", BUTTON_PADDING),
            ("background-color", BUTTON_BACKGROUND),
            ("color", BUTTON_COLOR),
            ("text-decoration", "none"),
            ("border-radius", f"{BUTTON_RADIUS}px"),
            ("margin-top", "auto"),
            ("text-align", "center"),
            ("font-size", f"{BUTTON_FONT_SIZE}px"),
        ])
        parts.append(
            f'<a class="card-button" href="{_attr(plan.button.href)}" target="_blank" '
            f'rel="noopener noreferrer" style="{button}">{escape(plan.button.text)}</a>'
        )
    parts.append("</div></div>")
    return "".join(parts)


def build_markup(plan: LayoutPlan) -> str:
    if plan.is_empty:
        return f'<div class="no-data">{NO_DATA_TEXT}</div>'
    cards = "\n".join(_card(c) for c in plan.cards)
    return f"{_container_open(plan.container)}\n{cards}\n</div>"
