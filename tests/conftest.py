"""Shared fixtures for the pawsheets test suite."""

import pytest
from fastapi.testclient import TestClient

from pawsheets.main import app
from pawsheets.routes import get_store
from pawsheets.schemas import Cell, Column, Worksheet
from pawsheets.store import MemoryStore
from pawsheets.worksheet import dump_record


def make_worksheet(header, *data_rows, worksheet_id="ws-1", styles=None):
    """Worksheet whose first column is the image column."""
    columns = [Column(name="Images", type="image")] + [Column(name="", type="text") for _ in header[1:]]

    def to_row(values):
        return [Cell(value=v, type=columns[i].type) for i, v in enumerate(values)]

    kwargs = {}
    if styles is not None:
        kwargs["styles"] = styles
    return Worksheet(
        id=worksheet_id,
        user_id="user-1",
        name="Pets",
        columns=columns,
        rows=[to_row(header)] + [to_row(r) for r in data_rows],
        **kwargs,
    )


@pytest.fixture
def pets():
    return make_worksheet(
        ["Images", "Name", "Age"],
        ["https://img.example/fido.png", "Fido", "3"],
        ["", "Rex", "5"],
        ["", "", "  "],
    )


@pytest.fixture
def store():
    return MemoryStore(public_base_url="http://testserver")


@pytest.fixture
def stored_pets(store, pets):
    return store.put_record(dump_record(pets))


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
