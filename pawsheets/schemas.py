# pawsheets/schemas.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from pawsheets.styles import DEFAULT_STYLES, StyleConfig

CellType = Literal["image", "text"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_TIMESTAMP = TypeAdapter(datetime)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Stored created_at as an aware datetime; unparseable values sort first."""
    try:
        parsed = _TIMESTAMP.validate_python(value)
    except ValidationError:
        return EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class Column(BaseModel):
    name: str = ""
    type: CellType = "text"


class Cell(BaseModel):
    value: str = ""
    type: CellType = "text"

    def is_blank(self) -> bool:
        return not self.value.strip()


class Worksheet(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    name: str = "My Worksheet"
    columns: List[Column] = Field(default_factory=list)
    rows: List[List[Cell]] = Field(default_factory=list)
    styles: StyleConfig = DEFAULT_STYLES
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def header_row(self) -> List[Cell]:
        return self.rows[0] if self.rows else []

    @property
    def data_rows(self) -> List[List[Cell]]:
        return self.rows[1:]


class WorksheetSummary(BaseModel):
    id: str
    user_id: Optional[str] = None
    name: str = ""
    created_at: datetime


class CardField(BaseModel):
    header: str
    value: str = ""


class CardProjection(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_field: CardField
    fields: List[CardField] = Field(default_factory=list)


class EmbedSnippets(BaseModel):
    html_snippet: str
    iframe_snippet: str


class Theme(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    name: str
    styles: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)


class Feedback(BaseModel):
    name: str
    email: str
    message: str


class StoredImage(BaseModel):
    path: str
    url: str


# ------------------------------
# Request bodies
# ------------------------------
class CreateWorksheetRequest(BaseModel):
    user_id: Optional[str] = None
    name: str = "My Worksheet"


class SaveWorksheetRequest(BaseModel):
    name: Optional[str] = None
    columns: Optional[Any] = None
    rows: Optional[Any] = None
    styles: Optional[Dict[str, Any]] = None


class CopyWorksheetRequest(BaseModel):
    name: str


class CellUpdate(BaseModel):
    value: str = ""
