# pawsheets/worksheet.py
"""
Worksheet model: normalization, row/column mutations and the stored-record codec.

Every mutation builds the new column/row lists first and assigns them in one
step, so a refused or failed operation never leaves rows and columns out of
alignment.
"""

import json
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from pawsheets.config import get_settings
from pawsheets.errors import MalformedStoredData, ValidationRefusal
from pawsheets.schemas import Cell, Column, Worksheet
from pawsheets.styles import coerce_styles

logger = logging.getLogger(__name__)

IMAGE_COLUMN_NAME = "Images"


# ============================================================
# helpers
# ============================================================

def empty_cell(column: Column) -> Cell:
    return Cell(value="", type=column.type)


def empty_row(columns: Sequence[Column]) -> List[Cell]:
    return [empty_cell(c) for c in columns]


def default_columns(count: Optional[int] = None) -> List[Column]:
    count = count or get_settings().default_columns
    return [Column(name=IMAGE_COLUMN_NAME, type="image")] + [
        Column(name="", type="text") for _ in range(max(count - 1, 0))
    ]


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    letter = ""
    num = index
    while num >= 0:
        letter = chr(num % 26 + 65) + letter
        num = num // 26 - 1
    return letter


def _to_column(raw: Any) -> Column:
    if isinstance(raw, Column):
        return raw
    if isinstance(raw, dict):
        return Column(
            name=str(raw.get("name") or ""),
            type="image" if raw.get("type") == "image" else "text",
        )
    return Column(name=str(raw or ""), type="text")


def _to_cell(raw: Any, column: Optional[Column]) -> Cell:
    col_type = column.type if column else "text"
    if isinstance(raw, Cell):
        return raw
    if isinstance(raw, dict):
        value = raw.get("value")
        cell_type = raw.get("type") if raw.get("type") in ("image", "text") else col_type
        return Cell(value="" if value is None else str(value), type=cell_type)
    if raw is None:
        return Cell(value="", type=col_type)
    return Cell(value=str(raw), type=col_type)


# ============================================================
# normalization
# ============================================================

def normalize(raw_columns: Optional[Iterable[Any]],
              raw_rows: Optional[Iterable[Iterable[Any]]],
              default_rows: Optional[int] = None) -> Tuple[List[Column], List[List[Cell]]]:
    """
    Bring columns/rows into the fixed worksheet shape.

    - column 0 is always an image column (synthesized and prepended to every
      row when missing)
    - missing rows become `default_rows` empty rows
    - short rows are padded with empty cells typed after their column
    """
    columns = [_to_column(c) for c in (raw_columns or [])]
    rows_in = [list(r) if r is not None else [] for r in (raw_rows or [])]

    if not columns and not rows_in:
        columns = default_columns()
    elif not columns or columns[0].type != "image":
        columns = [Column(name=IMAGE_COLUMN_NAME, type="image")] + columns
        rows_in = [[Cell(value="", type="image")] + r for r in rows_in]

    # rows wider than the column list keep their cells; the extra columns are text
    widest = max((len(r) for r in rows_in), default=0)
    if widest > len(columns):
        columns = columns + [Column(name="", type="text") for _ in range(widest - len(columns))]

    if not rows_in:
        count = default_rows or get_settings().default_rows
        return columns, [empty_row(columns) for _ in range(count)]

    rows: List[List[Cell]] = []
    for raw_row in rows_in:
        row = [_to_cell(v, columns[i]) for i, v in enumerate(raw_row)]
        row.extend(empty_cell(c) for c in columns[len(row):])
        rows.append(row)
    return columns, rows


def normalize_worksheet(ws: Worksheet) -> Worksheet:
    columns, rows = normalize(ws.columns, ws.rows)
    ws.columns, ws.rows = columns, rows
    return ws


def new_worksheet(user_id: Optional[str] = None, name: str = "My Worksheet",
                  worksheet_id: Optional[str] = None) -> Worksheet:
    """Default skeleton for a user's first worksheet."""
    columns, rows = normalize(default_columns(), None)
    return Worksheet(id=worksheet_id, user_id=user_id, name=name, columns=columns, rows=rows)


# ============================================================
# mutations
# ============================================================

def add_row(ws: Worksheet) -> None:
    ws.rows = ws.rows + [empty_row(ws.columns)]


def add_column(ws: Worksheet, name: str = "") -> None:
    columns = ws.columns + [Column(name=name, type="text")]
    rows = [r + [Cell(value="", type="text")] for r in ws.rows]
    ws.columns, ws.rows = columns, rows


def delete_row(ws: Worksheet, index: int) -> None:
    if index == 0:
        raise ValidationRefusal("The first row is used for field names and cannot be deleted.")
    if not 0 < index < len(ws.rows):
        raise ValidationRefusal(f"Row {index + 1} does not exist.")
    ws.rows = [r for i, r in enumerate(ws.rows) if i != index]


def delete_column(ws: Worksheet, index: int) -> None:
    if index == 0:
        raise ValidationRefusal("Column A is reserved for images and cannot be deleted.")
    if not 0 < index < len(ws.columns):
        raise ValidationRefusal(f"Column {column_letter(index)} does not exist.")
    columns = [c for i, c in enumerate(ws.columns) if i != index]
    rows = [[cell for i, cell in enumerate(r) if i != index] for r in ws.rows]
    ws.columns, ws.rows = columns, rows


def get_cell(ws: Worksheet, row: int, col: int) -> Cell:
    if not (0 <= row < len(ws.rows) and 0 <= col < len(ws.columns)):
        raise ValidationRefusal(f"Cell {column_letter(max(col, 0))}{row + 1} does not exist.")
    return ws.rows[row][col]


def set_cell(ws: Worksheet, row: int, col: int, value: str) -> Cell:
    cell = get_cell(ws, row, col).model_copy(update={"value": value})
    new_row = list(ws.rows[row])
    new_row[col] = cell
    ws.rows = ws.rows[:row] + [new_row] + ws.rows[row + 1:]
    return cell


def rename_worksheet(ws: Worksheet, name: str) -> None:
    ws.name = name.strip() or ws.name


# ============================================================
# stored record codec
# ============================================================

def _decode(value: Any, field: str) -> Any:
    """Stored JSON columns may arrive already decoded or as a JSON string."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise MalformedStoredData(f"{field}: {e}") from e
    return value


def decode_columns(value: Any) -> Optional[list]:
    columns = _decode(value, "columns")
    if columns is not None and not isinstance(columns, list):
        raise MalformedStoredData("columns: expected a list")
    return columns


def decode_rows(value: Any) -> Optional[list]:
    rows = _decode(value, "rows")
    if rows is not None and (not isinstance(rows, list)
                             or any(not isinstance(r, list) for r in rows)):
        raise MalformedStoredData("rows: expected a list of lists")
    return rows


def _columns_from_rows(rows: list) -> List[dict]:
    """Column list inferred from the cell types of the first row."""
    first = rows[0] if rows else []
    return [
        {"name": IMAGE_COLUMN_NAME if i == 0 else "",
         "type": cell.get("type", "text") if isinstance(cell, dict) else "text"}
        for i, cell in enumerate(first)
    ]


def load_record(record: dict) -> Worksheet:
    """
    Build a normalized Worksheet from a stored record.

    Malformed columns/rows/styles never raise; each falls back on its own.
    """
    record_id = record.get("id")
    try:
        raw_rows = decode_rows(record.get("rows"))
    except MalformedStoredData as e:
        logger.warning("Worksheet %s has malformed rows, using defaults: %s", record_id, e)
        raw_rows = None
    try:
        raw_columns = decode_columns(record.get("columns"))
    except MalformedStoredData as e:
        logger.warning("Worksheet %s has malformed columns, rebuilding from rows: %s", record_id, e)
        raw_columns = _columns_from_rows(raw_rows) if raw_rows else None

    try:
        raw_styles = _decode(record.get("styles"), "styles")
        if raw_styles is not None and not isinstance(raw_styles, dict):
            raise MalformedStoredData("styles: expected an object")
    except MalformedStoredData as e:
        logger.warning("Worksheet %s has malformed styles, using defaults: %s", record_id, e)
        raw_styles = None

    columns, rows = normalize(raw_columns, raw_rows)
    data = {
        "id": None if record_id is None else str(record_id),
        "user_id": record.get("user_id"),
        "name": record.get("name") or "My Worksheet",
        "columns": columns,
        "rows": rows,
        "styles": coerce_styles(raw_styles),
    }
    if record.get("created_at"):
        data["created_at"] = record["created_at"]
    try:
        return Worksheet(**data)
    except ValidationError as e:
        logger.warning("Worksheet %s has malformed metadata: %s", record_id, e)
        data.pop("created_at", None)
        data["name"] = str(data["name"])
        return Worksheet(**data)


def dump_record(ws: Worksheet) -> dict:
    """Stored shape: native JSON lists for columns/rows, camelCase styles."""
    return {
        "id": ws.id,
        "user_id": ws.user_id,
        "name": ws.name,
        "columns": [c.model_dump() for c in ws.columns],
        "rows": [[cell.model_dump() for cell in row] for row in ws.rows],
        "styles": ws.styles.to_dict(),
        "created_at": ws.created_at.isoformat(),
    }
