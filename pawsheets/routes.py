# pawsheets/routes.py
import io
import json
import logging
from html import escape
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import HTMLResponse, Response
from pydantic import ValidationError

from pawsheets.config import get_settings
from pawsheets.embed import to_embed
from pawsheets.errors import MalformedStoredData, NotFound
from pawsheets.layout import NO_DATA_TEXT
from pawsheets.renderer import render_preview_image, render_worksheet
from pawsheets.schemas import (
    CellUpdate,
    CopyWorksheetRequest,
    CreateWorksheetRequest,
    EmbedSnippets,
    Feedback,
    SaveWorksheetRequest,
    StoredImage,
    Theme,
    Worksheet,
    WorksheetSummary,
)
from pawsheets.store import MemoryStore
from pawsheets.styles import SIZE_PRESETS, THEME_PRESETS, apply_size_preset, apply_theme, build_styles
from pawsheets import worksheet as sheet

logger = logging.getLogger(__name__)

router = APIRouter()
viewer_router = APIRouter()

_store: Optional[MemoryStore] = None


def get_store() -> MemoryStore:
    global _store
    if _store is None:
        _store = MemoryStore()
    return _store


def _load(store: MemoryStore, worksheet_id: str) -> Worksheet:
    return sheet.load_record(store.get_worksheet(worksheet_id))


def _save(store: MemoryStore, ws: Worksheet) -> Dict[str, Any]:
    return store.save_worksheet(sheet.dump_record(ws))


# ------------------------------
# HTML export
# ------------------------------
@router.get("/cards", response_class=HTMLResponse)
def export_cards(id: Optional[str] = None, store: MemoryStore = Depends(get_store)):
    """
    Rendered cards for a worksheet as an HTML fragment.
    """
    if not id:
        return HTMLResponse("Worksheet ID is required", status_code=400)
    try:
        ws = _load(store, id)
        if len(ws.rows) < 2:
            return HTMLResponse(f"<div>{NO_DATA_TEXT}</div>")
        _, markup = render_worksheet(ws)
        return HTMLResponse(markup)
    except NotFound:
        return HTMLResponse("Worksheet not found", status_code=404)
    except Exception:
        logger.exception("Failed to export cards for worksheet %s", id)
        return HTMLResponse("Server error", status_code=500)


# ------------------------------
# Worksheets
# ------------------------------
@router.post("/worksheets")
def open_worksheet(req: CreateWorksheetRequest, store: MemoryStore = Depends(get_store)):
    """The user's worksheet, created with the default skeleton on first access."""
    return store.get_or_create_for_user(req.user_id or None, name=req.name)


@router.get("/worksheets", response_model=List[WorksheetSummary])
def list_worksheets(user_id: str = "", store: MemoryStore = Depends(get_store)):
    """Saved templates for a user, newest first."""
    return store.list_worksheets(user_id or None)


@router.get("/worksheets/{worksheet_id}")
def get_worksheet(worksheet_id: str, store: MemoryStore = Depends(get_store)):
    return store.get_worksheet(worksheet_id)


@router.delete("/worksheets/{worksheet_id}")
def delete_worksheet(worksheet_id: str, store: MemoryStore = Depends(get_store)):
    store.delete_worksheet(worksheet_id)
    return {"status": "success"}


@router.post("/worksheets/{worksheet_id}/copy")
def copy_worksheet(worksheet_id: str, req: CopyWorksheetRequest,
                   store: MemoryStore = Depends(get_store)):
    if not req.name.strip():
        raise HTTPException(status_code=400, detail="`name` must not be empty")
    return store.copy_worksheet(worksheet_id, req.name.strip())


@router.put("/worksheets/{worksheet_id}")
def save_worksheet(worksheet_id: str, req: SaveWorksheetRequest,
                   store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    # a bad payload is refused before anything is touched
    try:
        columns = sheet.decode_columns(req.columns)
        rows = sheet.decode_rows(req.rows)
    except MalformedStoredData as e:
        raise HTTPException(status_code=422, detail=str(e))
    styles = _build_styles(req.styles) if req.styles is not None else None

    if req.name is not None:
        sheet.rename_worksheet(ws, req.name)
    if columns is not None or rows is not None:
        ws.columns, ws.rows = sheet.normalize(
            columns if columns is not None else ws.columns,
            rows if rows is not None else ws.rows,
        )
    if styles is not None:
        ws.styles = styles
    return _save(store, ws)


@router.post("/worksheets/{worksheet_id}/rows")
def add_row(worksheet_id: str, store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    sheet.add_row(ws)
    return _save(store, ws)


@router.delete("/worksheets/{worksheet_id}/rows/{index}")
def delete_row(worksheet_id: str, index: int, store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    sheet.delete_row(ws, index)
    return _save(store, ws)


@router.post("/worksheets/{worksheet_id}/columns")
def add_column(worksheet_id: str, store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    sheet.add_column(ws)
    return _save(store, ws)


@router.delete("/worksheets/{worksheet_id}/columns/{index}")
def delete_column(worksheet_id: str, index: int, store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    sheet.delete_column(ws, index)
    return _save(store, ws)


@router.put("/worksheets/{worksheet_id}/cells/{row}/{col}")
def set_cell(worksheet_id: str, row: int, col: int, update: CellUpdate,
             store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    sheet.set_cell(ws, row, col, update.value)
    return _save(store, ws)


# ------------------------------
# Styles
# ------------------------------
def _build_styles(raw: Dict[str, Any]):
    try:
        return build_styles(raw)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


@router.put("/worksheets/{worksheet_id}/styles")
def replace_styles(worksheet_id: str, styles: Dict[str, Any],
                   store: MemoryStore = Depends(get_store)):
    """Replace the whole style config; omitted keys take their defaults."""
    ws = _load(store, worksheet_id)
    ws.styles = _build_styles(styles)
    return _save(store, ws)


@router.post("/worksheets/{worksheet_id}/styles/size/{preset}")
def size_preset(worksheet_id: str, preset: str, store: MemoryStore = Depends(get_store)):
    if preset not in SIZE_PRESETS:
        raise HTTPException(status_code=404, detail=f"Unknown size preset: {preset}")
    ws = _load(store, worksheet_id)
    ws.styles = apply_size_preset(ws.styles, preset)
    return _save(store, ws)


@router.post("/worksheets/{worksheet_id}/styles/theme/{preset}")
def theme_preset(worksheet_id: str, preset: str, store: MemoryStore = Depends(get_store)):
    if preset not in THEME_PRESETS:
        raise HTTPException(status_code=404, detail=f"Unknown theme: {preset}")
    ws = _load(store, worksheet_id)
    ws.styles = apply_theme(ws.styles, preset)
    return _save(store, ws)


# ------------------------------
# Embed & preview
# ------------------------------
@router.get("/worksheets/{worksheet_id}/embed", response_model=EmbedSnippets)
def embed_snippets(worksheet_id: str, origin: Optional[str] = None, equalize: bool = True,
                   store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    _, markup = render_worksheet(ws)
    return to_embed(markup, worksheet_id, origin or get_settings().host_origin, equalize=equalize)


@router.get("/worksheets/{worksheet_id}/preview.png")
def preview_png(worksheet_id: str, width: int = Query(1200, ge=200, le=4000),
                store: MemoryStore = Depends(get_store)):
    ws = _load(store, worksheet_id)
    tree, _ = render_worksheet(ws)
    img = render_preview_image(tree, max_width=width)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return Response(content=buf.getvalue(), media_type="image/png")


# ------------------------------
# Images
# ------------------------------
@router.post("/images", response_model=StoredImage)
async def upload_image(file: UploadFile = File(...), user_id: str = Form(""),
                       store: MemoryStore = Depends(get_store)):
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return store.upload_image(user_id or None, file.filename or "image", data)


@router.get("/images/{path:path}")
def get_image(path: str, store: MemoryStore = Depends(get_store)):
    data, content_type = store.get_image(path)
    return Response(content=data, media_type=content_type)


# ------------------------------
# Themes & feedback
# ------------------------------
@router.get("/themes", response_model=List[Theme])
def list_themes(user_id: str = "", store: MemoryStore = Depends(get_store)):
    return store.list_themes(user_id or None)


@router.post("/themes", response_model=Theme)
def save_theme(theme: Theme, store: MemoryStore = Depends(get_store)):
    if not theme.name.strip():
        raise HTTPException(status_code=400, detail="`name` must not be empty")
    return store.save_theme(theme)


@router.post("/feedback")
def submit_feedback(feedback: Feedback, store: MemoryStore = Depends(get_store)):
    if not feedback.message.strip():
        raise HTTPException(status_code=400, detail="`message` must not be empty")
    store.add_feedback(feedback)
    return {"status": "success"}


# ------------------------------
# Embed viewer
# ------------------------------
VIEWER_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title>
<style>body {{ margin: 0; padding: 12px; font-family: Arial, sans-serif; }}</style>
</head>
<body>
<div id="cards">{markup}</div>
<script>
  (function() {{
    var url = "/api/cards?id=" + encodeURIComponent({worksheet_id});
    setInterval(function() {{
      fetch(url).then(function(resp) {{
        if (resp.ok) return resp.text();
      }}).then(function(html) {{
        if (html !== undefined) document.getElementById("cards").innerHTML = html;
      }}).catch(function() {{}});
    }}, {refresh_ms});
  }})();
</script>
</body>
</html>"""


@viewer_router.get("/embed/{worksheet_id}", response_class=HTMLResponse)
def embed_viewer(worksheet_id: str, store: MemoryStore = Depends(get_store)):
    """Live viewer for iframe embeds; polls the export endpoint to stay current."""
    try:
        ws = _load(store, worksheet_id)
    except NotFound:
        return HTMLResponse("<div>Worksheet not found</div>", status_code=404)
    _, markup = render_worksheet(ws)
    page = VIEWER_PAGE.format(
        title=escape(ws.name),
        markup=markup,
        worksheet_id=json.dumps(worksheet_id).replace("</", "<\\/"),
        refresh_ms=get_settings().embed_refresh_seconds * 1000,
    )
    return HTMLResponse(page)
