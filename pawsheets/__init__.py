# pawsheets/__init__.py
"""
PawSheets - turn a worksheet into styled, embeddable cards.

Public API:
-----------
Worksheet model:
    normalize(columns, rows) -> (columns, rows)
    load_record(record) -> Worksheet
    dump_record(worksheet) -> dict

Styles:
    build_styles(overrides) -> StyleConfig
    apply_size_preset(styles, name) -> StyleConfig
    apply_theme(styles, name) -> StyleConfig

Cards:
    project_rows(rows, columns) -> List[CardProjection]
    render(projections, styles) -> (Element, str)
    to_embed(markup, worksheet_id, host_origin) -> EmbedSnippets
"""

from pawsheets.worksheet import normalize, load_record, dump_record, new_worksheet
from pawsheets.styles import StyleConfig, build_styles, apply_size_preset, apply_theme
from pawsheets.projection import project, project_rows
from pawsheets.renderer import render
from pawsheets.embed import to_embed

__all__ = [
    "normalize",
    "load_record",
    "dump_record",
    "new_worksheet",
    "StyleConfig",
    "build_styles",
    "apply_size_preset",
    "apply_theme",
    "project",
    "project_rows",
    "render",
    "to_embed",
]
