# pawsheets/renderer.py
from functools import lru_cache
from typing import List, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from pawsheets.layout import NO_DATA_TEXT, plan_layout
from pawsheets.markup import build_markup
from pawsheets.projection import project_rows
from pawsheets.schemas import CardProjection, Worksheet
from pawsheets.styles import StyleConfig
from pawsheets.tree import Element, build_tree

CANVAS_MARGIN = 10
LINE_SPACING = 4
IMAGE_PLACEHOLDER_FILL = (229, 231, 235)
IMAGE_PLACEHOLDER_LINE = (156, 163, 175)
SHADOW_FILL = (220, 220, 220)
SHADOW_OFFSET = 4


def render(cards: Sequence[CardProjection], styles: StyleConfig) -> Tuple[Element, str]:
    """Build the live tree and the export markup from one layout plan."""
    plan = plan_layout(cards, styles)
    return build_tree(plan), build_markup(plan)


def render_worksheet(ws: Worksheet) -> Tuple[Element, str]:
    return render(project_rows(ws.rows, ws.columns), ws.styles)


# ============================================================
# raster preview of a live tree
# ============================================================

@lru_cache(maxsize=32)
def load_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except IOError:
        return ImageFont.load_default(size=size)


def _rgb(color: str, fallback=(0, 0, 0)):
    try:
        return ImageColor.getrgb(color)
    except ValueError:
        return fallback


def _line_height(font: ImageFont.ImageFont) -> int:
    bbox = font.getbbox("Ag")
    return bbox[3] - bbox[1] + LINE_SPACING


def _text_width(text: str, font: ImageFont.ImageFont) -> int:
    bbox = font.getbbox(text)
    return bbox[2] - bbox[0]


Run = Tuple[str, ImageFont.ImageFont]


def wrap_runs(runs: Sequence[Run], max_width: int) -> List[List[Tuple[int, str, ImageFont.ImageFont]]]:
    """
    Greedy word wrap over runs that use different fonts (bold label followed
    by the value). Returns lines of (x offset, word, font).
    """
    lines: List[List[Tuple[int, str, ImageFont.ImageFont]]] = [[]]
    x = 0
    for text, font in runs:
        space = _text_width(" ", font) or 4
        for word in text.split():
            w = _text_width(word, font)
            if lines[-1] and x + space + w > max_width:
                lines.append([])
                x = 0
            if lines[-1]:
                x += space
            lines[-1].append((x, word, font))
            x += w
    return lines


def _field_runs(field_el: Element) -> List[Run]:
    runs = []
    for span in field_el.children:
        bold = bool(span.style.get("fontWeight"))
        runs.append((span.text, load_font(int(span.style.get("fontSize", 14)), bold)))
    return runs


def _stack_lines(card: Element, text_width: int):
    """Wrapped lines for every field plus the optional button."""
    stack = card.find("div", "card-fields")
    blocks = []
    for child in stack.children if stack else []:
        if child.class_name == "card-field":
            runs = _field_runs(child)
            lines = wrap_runs(runs, max(text_width, 1))
            height = max(len(lines), 1) * max(_line_height(f) for _, f in runs)
            blocks.append(("field", lines, height))
        elif child.class_name == "card-button":
            font = load_font(int(child.style.get("fontSize", 14)))
            height = _line_height(font) + 12
            blocks.append(("button", (child.text, font), height))
    return blocks


def _card_metrics(card: Element):
    style = card.style
    border = int(str(style.get("border", "0px")).split("px")[0] or 0)
    padding = int(style.get("padding", 0))
    width = max(int(style.get("width", 0)), 1)
    gap = int(style.get("gap", 0))
    inner_w = max(width - 2 * (padding + border), 1)

    img = card.find("img")
    img_w = img_h = 0
    if img is not None:
        img_w = inner_w if img.style["width"] == "100%" else min(int(img.style["width"]), inner_w)
        img_h = int(img.style["height"])

    vertical = style.get("flexDirection") == "column"
    text_w = inner_w if vertical or img is None else max(inner_w - img_w - gap, 1)
    blocks = _stack_lines(card, text_w)
    text_h = sum(h for _, _, h in blocks) + max(len(blocks) - 1, 0) * 6

    if img is None:
        content_h = text_h
    elif vertical:
        content_h = img_h + gap + text_h
    else:
        content_h = max(img_h, text_h)
    height = max(int(style.get("minHeight", 0)), content_h + 2 * (padding + border), 1)
    return {
        "border": border, "padding": padding, "width": width, "height": height,
        "gap": gap, "inner_w": inner_w, "img": img, "img_w": img_w, "img_h": img_h,
        "text_w": text_w, "blocks": blocks, "vertical": vertical,
    }


def _place_cards(container: Element, metrics: List[dict], max_width: int):
    """Positions (x, y) per card and the canvas size."""
    style = container.style
    gap = int(style.get("gap", 0))
    positions = []
    m = CANVAS_MARGIN

    if style.get("display") == "grid":
        min_track = max(metrics[0]["width"], 1)
        tracks = max(1, (max_width - 2 * m + gap) // (min_track + gap))
        track_w = (max_width - 2 * m - gap * (tracks - 1)) // tracks
        y = m
        for start in range(0, len(metrics), tracks):
            row = metrics[start:start + tracks]
            for i, _ in enumerate(row):
                positions.append((m + i * (track_w + gap), y))
            y += max(c["height"] for c in row) + gap
        return positions, (max_width, y - gap + m)

    if style.get("flexDirection") == "row":
        x = m
        for c in metrics:
            positions.append((x, m))
            x += c["width"] + gap
        return positions, (x - gap + m, max(c["height"] for c in metrics) + 2 * m)

    y = m
    for c in metrics:
        positions.append((m, y))
        y += c["height"] + gap
    return positions, (max(c["width"] for c in metrics) + 2 * m, y - gap + m)


def _draw_card(draw: ImageDraw.ImageDraw, card: Element, c: dict, x: int, y: int) -> None:
    style = card.style
    radius = int(style.get("borderRadius", 0))
    box = [x, y, x + c["width"] - 1, y + c["height"] - 1]

    if style.get("boxShadow", "none") != "none":
        draw.rounded_rectangle([box[0] + SHADOW_OFFSET, box[1] + SHADOW_OFFSET,
                                box[2] + SHADOW_OFFSET, box[3] + SHADOW_OFFSET],
                               radius=radius, fill=SHADOW_FILL)
    border_color = str(style.get("border", "")).split("solid", 1)[-1].strip()
    draw.rounded_rectangle(box, radius=radius,
                           fill=_rgb(style.get("backgroundColor", "#ffffff"), (255, 255, 255)),
                           outline=_rgb(border_color, (204, 204, 204)) if c["border"] else None,
                           width=c["border"])

    left = x + c["border"] + c["padding"]
    top = y + c["border"] + c["padding"]
    text_left, text_top = left, top

    if c["img"] is not None and c["img_w"] > 0 and c["img_h"] > 0:
        img_left = left
        if style.get("flexDirection") == "row-reverse":
            img_left = left + c["inner_w"] - c["img_w"]
        img_box = [img_left, top, img_left + c["img_w"] - 1, top + c["img_h"] - 1]
        draw.rounded_rectangle(img_box, radius=int(c["img"].style.get("borderRadius", 0)),
                               fill=IMAGE_PLACEHOLDER_FILL, outline=IMAGE_PLACEHOLDER_LINE)
        draw.line(img_box, fill=IMAGE_PLACEHOLDER_LINE)
        if c["vertical"]:
            text_top = top + c["img_h"] + c["gap"]
        elif style.get("flexDirection") == "row":
            text_left = left + c["img_w"] + c["gap"]

    color = _rgb(style.get("color", "#000000"))
    line_y = text_top
    for kind, payload, height in c["blocks"]:
        if kind == "field":
            fonts = [f for line in payload for _, _, f in line]
            lh = max((_line_height(f) for f in fonts), default=_line_height(load_font(14)))
            for line in payload:
                for dx, word, font in line:
                    draw.text((text_left + dx, line_y), word, font=font, fill=color)
                line_y += lh
        else:
            text, font = payload
            tw = _text_width(text, font)
            draw.rounded_rectangle([text_left, line_y, text_left + tw + 24, line_y + height - 1],
                                   radius=4, fill=_rgb("#001f3f"))
            draw.text((text_left + 12, line_y + 6), text, font=font, fill=(255, 255, 255))
            line_y += height
        line_y += 6


def render_preview_image(tree: Element, max_width: int = 1200) -> Image.Image:
    """Rasterize a live tree with Pillow. Images are drawn as placeholders."""
    cards = tree.find_all("div", "card")
    if not cards:
        font = load_font(14)
        img = Image.new("RGB", (max_width, _line_height(font) + 2 * CANVAS_MARGIN), "white")
        ImageDraw.Draw(img).text((CANVAS_MARGIN, CANVAS_MARGIN), NO_DATA_TEXT, font=font, fill="black")
        return img

    metrics = [_card_metrics(card) for card in cards]
    positions, size = _place_cards(tree, metrics, max_width)
    img = Image.new("RGB", size, "white")
    draw = ImageDraw.Draw(img)
    for card, c, (x, y) in zip(cards, metrics, positions):
        _draw_card(draw, card, c, x, y)
    return img
