# pawsheets/grid.py
"""Bridge between a Worksheet and the pandas DataFrame the editor's data table edits."""

from typing import List, Tuple

import pandas as pd

from pawsheets.schemas import Worksheet
from pawsheets.worksheet import column_letter

HEADER_ROW_LABEL = "Field Data"


def column_labels(ws: Worksheet) -> List[str]:
    labels = []
    for i, col in enumerate(ws.columns):
        letter = column_letter(i)
        labels.append(f"{letter} ({col.name})" if col.name else letter)
    return labels


def row_labels(ws: Worksheet) -> List[str]:
    return [HEADER_ROW_LABEL if i == 0 else str(i + 1) for i in range(len(ws.rows))]


def worksheet_to_frame(ws: Worksheet) -> pd.DataFrame:
    data = [[cell.value for cell in row] for row in ws.rows]
    return pd.DataFrame(data, columns=column_labels(ws), index=row_labels(ws), dtype="object")


def _clean(value) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def frame_to_values(frame: pd.DataFrame) -> List[List[str]]:
    return [[_clean(v) for v in row] for row in frame.itertuples(index=False, name=None)]


def changed_cells(ws: Worksheet, frame: pd.DataFrame) -> List[Tuple[int, int, str]]:
    """(row, col, value) for every cell the edited frame changes."""
    changes = []
    for r, values in enumerate(frame_to_values(frame)):
        if r >= len(ws.rows):
            break
        for c, value in enumerate(values[:len(ws.columns)]):
            if ws.rows[r][c].value != value:
                changes.append((r, c, value))
    return changes
