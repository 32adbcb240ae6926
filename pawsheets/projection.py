# pawsheets/projection.py

from typing import List, Optional, Sequence

from pawsheets.schemas import CardField, CardProjection, Cell, Column


def is_valid_row(row: Sequence[Cell]) -> bool:
    """A data row gives a card when at least one cell has non-blank text."""
    return any(cell is not None and not cell.is_blank() for cell in row)


def field_header(header_row: Sequence[Cell], index: int) -> str:
    if index < len(header_row) and not header_row[index].is_blank():
        return header_row[index].value
    return f"Field {index}"


def project(header_row: Sequence[Cell], data_row: Sequence[Cell],
            columns: Sequence[Column]) -> Optional[CardProjection]:
    """
    Map one data row onto a card. Column 0 is the image field, the remaining
    columns become the card fields in column order. Returns None for a row
    with no content.
    """
    if not is_valid_row(data_row):
        return None

    pairs = [
        CardField(
            header=field_header(header_row, i),
            value=data_row[i].value if i < len(data_row) else "",
        )
        for i in range(len(columns))
    ]
    if not pairs:
        return None
    return CardProjection(image_field=pairs[0], fields=pairs[1:])


def project_rows(rows: Sequence[Sequence[Cell]], columns: Sequence[Column]) -> List[CardProjection]:
    """Project every data row (rows[1:]); rows[0] supplies the labels."""
    if len(rows) < 2:
        return []
    header_row = rows[0]
    cards = []
    for row in rows[1:]:
        card = project(header_row, row, columns)
        if card is not None:
            cards.append(card)
    return cards
