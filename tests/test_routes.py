"""
API tests using FastAPI's TestClient against an in-memory store.
"""

import json

import pytest
from bs4 import BeautifulSoup

from pawsheets.errors import NotFound
from pawsheets.layout import NO_DATA_TEXT
from pawsheets.main import app
from pawsheets.routes import get_store
from pawsheets.worksheet import dump_record

from tests.conftest import make_worksheet


class TestExportCards:

    def test_requires_id(self, client):
        resp = client.get("/api/cards")
        assert resp.status_code == 400
        assert resp.text == "Worksheet ID is required"

    def test_unknown_worksheet(self, client):
        resp = client.get("/api/cards", params={"id": "nope"})
        assert resp.status_code == 404
        assert resp.text == "Worksheet not found"

    def test_renders_cards(self, client, stored_pets):
        resp = client.get("/api/cards", params={"id": "ws-1"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        cards = BeautifulSoup(resp.text, "html.parser").select(".card-container > .card")
        assert len(cards) == 2
        assert "Fido" in cards[0].get_text()

    def test_header_only_gives_placeholder(self, client, store):
        store.put_record(dump_record(make_worksheet(["Images", "Name"], worksheet_id="empty")))
        resp = client.get("/api/cards", params={"id": "empty"})
        assert resp.status_code == 200
        assert NO_DATA_TEXT in resp.text

    def test_json_string_grid_from_storage(self, client, store, pets):
        record = dump_record(pets)
        record["id"] = "legacy"
        record["columns"] = json.dumps(record["columns"])
        record["rows"] = json.dumps(record["rows"])
        store.put_record(record)
        resp = client.get("/api/cards", params={"id": "legacy"})
        assert resp.status_code == 200
        assert len(BeautifulSoup(resp.text, "html.parser").select(".card")) == 2

    def test_store_failure_is_server_error(self, client):
        class BrokenStore:
            def get_worksheet(self, worksheet_id):
                raise RuntimeError("connection reset")

        app.dependency_overrides[get_store] = lambda: BrokenStore()
        resp = client.get("/api/cards", params={"id": "ws-1"})
        assert resp.status_code == 500
        assert resp.text == "Server error"


class TestWorksheets:

    def test_create_for_user_is_idempotent(self, client):
        first = client.post("/api/worksheets", json={"user_id": "u-9"}).json()
        second = client.post("/api/worksheets", json={"user_id": "u-9"}).json()
        assert first["id"] == second["id"]
        assert len(first["rows"]) == 5
        assert first["columns"][0] == {"name": "Images", "type": "image"}
        assert first["styles"]["cardWidth"] == 320

    def test_get(self, client, stored_pets):
        body = client.get("/api/worksheets/ws-1").json()
        assert body["name"] == "Pets"
        assert body["rows"][1][1]["value"] == "Fido"

    def test_get_missing(self, client):
        resp = client.get("/api/worksheets/missing")
        assert resp.status_code == 404
        assert "not found" in resp.json()["detail"]

    def test_save(self, client, stored_pets):
        rows = [[{"value": "Images"}, {"value": "Name"}], [{"value": ""}, {"value": "Spot"}]]
        resp = client.put("/api/worksheets/ws-1", json={"name": "Dogs", "rows": rows,
                                                       "columns": [{"name": "Images", "type": "image"},
                                                                   {"name": "", "type": "text"}]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Dogs"
        assert [c["value"] for c in body["rows"][1]] == ["", "Spot"]

    @pytest.mark.parametrize("body", [
        {"rows": "{not json"},
        {"rows": ["flat"]},
        {"columns": "[[", "rows": [[{"value": "x"}]]},
    ])
    def test_malformed_grid_is_refused(self, client, stored_pets, body):
        before = client.get("/api/worksheets/ws-1").json()
        resp = client.put("/api/worksheets/ws-1", json=body)
        assert resp.status_code == 422
        assert client.get("/api/worksheets/ws-1").json() == before

    def test_rows_without_columns_get_an_image_column(self, client, store):
        store.put_record({"id": "bare", "name": "Bare"})
        body = client.put("/api/worksheets/bare", json={"columns": [], "rows": [["Name"], ["Fido"]]}).json()
        assert [c["value"] for c in body["rows"][1]] == ["", "Fido"]
        assert body["columns"][0]["type"] == "image"

    def test_add_and_delete_row(self, client, stored_pets):
        assert len(client.post("/api/worksheets/ws-1/rows").json()["rows"]) == 5
        body = client.delete("/api/worksheets/ws-1/rows/1").json()
        assert len(body["rows"]) == 4
        assert body["rows"][1][1]["value"] == "Rex"

    def test_add_and_delete_column(self, client, stored_pets):
        assert len(client.post("/api/worksheets/ws-1/columns").json()["columns"]) == 4
        body = client.delete("/api/worksheets/ws-1/columns/2").json()
        assert [c["value"] for c in body["rows"][0]] == ["Images", "Name", ""]

    @pytest.mark.parametrize("path", ["/api/worksheets/ws-1/rows/0", "/api/worksheets/ws-1/columns/0"])
    def test_protected_deletes_are_refused(self, client, stored_pets, path):
        before = client.get("/api/worksheets/ws-1").json()
        resp = client.delete(path)
        assert resp.status_code == 409
        assert resp.json()["detail"]
        assert client.get("/api/worksheets/ws-1").json() == before

    def test_set_cell(self, client, stored_pets):
        resp = client.put("/api/worksheets/ws-1/cells/2/1", json={"value": "Rexy"})
        assert resp.status_code == 200
        assert resp.json()["rows"][2][1] == {"value": "Rexy", "type": "text"}

    def test_set_cell_out_of_range(self, client, stored_pets):
        assert client.put("/api/worksheets/ws-1/cells/9/9", json={"value": "x"}).status_code == 409


class TestTemplates:

    @pytest.fixture
    def templates(self, store):
        for worksheet_id, name, created in [("old", "Old", "2024-01-01T00:00:00+00:00"),
                                            ("new", "New", "2024-06-01T00:00:00+00:00"),
                                            ("mid", "Mid", "2024-03-01T00:00:00+00:00")]:
            store.put_record({"id": worksheet_id, "user_id": "u-1", "name": name, "created_at": created})
        store.put_record({"id": "other", "user_id": "u-2", "name": "Other"})

    def test_list_newest_first(self, client, templates):
        body = client.get("/api/worksheets", params={"user_id": "u-1"}).json()
        assert [t["id"] for t in body] == ["new", "mid", "old"]
        assert body[0]["name"] == "New"
        assert body[0]["created_at"].startswith("2024-06-01")

    def test_open_returns_newest(self, client, templates):
        assert client.post("/api/worksheets", json={"user_id": "u-1"}).json()["id"] == "new"

    def test_delete(self, client, templates):
        assert client.delete("/api/worksheets/mid").json() == {"status": "success"}
        assert client.get("/api/worksheets/mid").status_code == 404
        ids = [t["id"] for t in client.get("/api/worksheets", params={"user_id": "u-1"}).json()]
        assert ids == ["new", "old"]

    def test_delete_missing(self, client):
        assert client.delete("/api/worksheets/nope").status_code == 404

    def test_copy(self, client, stored_pets):
        resp = client.post("/api/worksheets/ws-1/copy", json={"name": " Puppies "})
        assert resp.status_code == 200
        copied = resp.json()
        assert copied["id"] != "ws-1"
        assert copied["name"] == "Puppies"
        assert copied["rows"] == stored_pets["rows"]
        ids = [t["id"] for t in client.get("/api/worksheets", params={"user_id": "user-1"}).json()]
        assert ids == [copied["id"], "ws-1"]

    def test_copy_requires_name(self, client, stored_pets):
        assert client.post("/api/worksheets/ws-1/copy", json={"name": "  "}).status_code == 400

    def test_copy_missing(self, client):
        assert client.post("/api/worksheets/nope/copy", json={"name": "X"}).status_code == 404


class TestStyles:

    def test_replace_fills_defaults(self, client, stored_pets):
        client.post("/api/worksheets/ws-1/styles/size/large")
        body = client.put("/api/worksheets/ws-1/styles", json={"layout": "left-image"}).json()
        assert body["styles"]["layout"] == "left-image"
        assert body["styles"]["cardWidth"] == 320

    def test_invalid_style_value(self, client, stored_pets):
        resp = client.put("/api/worksheets/ws-1/styles", json={"cardArrangement": "spiral"})
        assert resp.status_code == 422

    def test_transparent_border_is_replaced(self, client, stored_pets):
        body = client.put("/api/worksheets/ws-1/styles", json={"borderColor": "transparent"}).json()
        assert body["styles"]["borderColor"] == "#cccccc"

    @pytest.mark.parametrize("styles", [
        {"backgroundColor": "red; position: fixed"},
        {"fontFamily": "Arial} body {display:none"},
        {"textColor": "url(https://evil.example/x)"},
    ])
    def test_style_values_cannot_leave_their_declaration(self, client, stored_pets, styles):
        assert client.put("/api/worksheets/ws-1/styles", json=styles).status_code == 422
        assert client.put("/api/worksheets/ws-1", json={"styles": styles}).status_code == 422

    def test_size_preset(self, client, stored_pets):
        styles = client.post("/api/worksheets/ws-1/styles/size/small").json()["styles"]
        assert (styles["cardWidth"], styles["cardHeight"], styles["imageWidth"],
                styles["imageHeight"], styles["gap"]) == (240, 300, 80, 80, 6)
        assert styles["sizePreset"] == "small"

    def test_theme_preset(self, client, stored_pets):
        styles = client.post("/api/worksheets/ws-1/styles/theme/dark").json()["styles"]
        assert styles["backgroundColor"] == "#1e1e1e"

    @pytest.mark.parametrize("path", ["size/huge", "theme/neon"])
    def test_unknown_preset(self, client, stored_pets, path):
        assert client.post(f"/api/worksheets/ws-1/styles/{path}").status_code == 404


class TestEmbedAndPreview:

    def test_embed_snippets(self, client, stored_pets):
        body = client.get("/api/worksheets/ws-1/embed", params={"origin": "https://pets.example"}).json()
        assert 'src="https://pets.example/embed/ws-1"' in body["iframe_snippet"]
        assert "<script>" in body["html_snippet"]
        assert len(BeautifulSoup(body["html_snippet"], "html.parser").select(".card")) == 2

    def test_embed_without_equalizer(self, client, stored_pets):
        body = client.get("/api/worksheets/ws-1/embed", params={"equalize": "false"}).json()
        assert "<script>" not in body["html_snippet"]
        assert "http://localhost:8000/embed/ws-1" in body["iframe_snippet"]

    def test_preview_png(self, client, stored_pets):
        resp = client.get("/api/worksheets/ws-1/preview.png", params={"width": 600})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content[:8] == b"\x89PNG\r\n\x1a\n"

    def test_preview_width_bounds(self, client, stored_pets):
        assert client.get("/api/worksheets/ws-1/preview.png", params={"width": 50}).status_code == 422


class TestImages:

    def test_upload_and_fetch(self, client):
        resp = client.post("/api/images", files={"file": ("cat.png", b"\x89PNGdata", "image/png")},
                           data={"user_id": "u-1"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["path"].startswith("u-1/")
        assert body["path"].endswith("-cat.png")
        assert body["url"] == f"http://testserver/api/images/{body['path']}"

        fetched = client.get(f"/api/images/{body['path']}")
        assert fetched.status_code == 200
        assert fetched.content == b"\x89PNGdata"
        assert fetched.headers["content-type"] == "image/png"

    def test_anonymous_upload_goes_to_public(self, client):
        body = client.post("/api/images", files={"file": ("a.jpg", b"jpg", "image/jpeg")}).json()
        assert body["path"].startswith("public/")

    def test_empty_upload(self, client):
        resp = client.post("/api/images", files={"file": ("a.png", b"", "image/png")})
        assert resp.status_code == 400

    def test_missing_image(self, client):
        assert client.get("/api/images/public/nothing.png").status_code == 404


class TestThemesAndFeedback:

    def test_themes_newest_first(self, client):
        client.post("/api/themes", json={"user_id": "u-1", "name": "Old", "styles": {"backgroundColor": "#000"},
                                         "created_at": "2024-01-01T00:00:00Z"})
        client.post("/api/themes", json={"user_id": "u-1", "name": "New", "styles": {},
                                         "created_at": "2024-06-01T00:00:00Z"})
        client.post("/api/themes", json={"user_id": "u-2", "name": "Other"})
        names = [t["name"] for t in client.get("/api/themes", params={"user_id": "u-1"}).json()]
        assert names == ["New", "Old"]

    def test_theme_requires_name(self, client):
        assert client.post("/api/themes", json={"name": "  "}).status_code == 400

    def test_feedback(self, client, store):
        resp = client.post("/api/feedback", json={"name": "Ann", "email": "ann@example.com", "message": "Love it"})
        assert resp.json() == {"status": "success"}
        assert store.feedback == [{"name": "Ann", "email": "ann@example.com", "message": "Love it"}]

    def test_empty_feedback(self, client):
        resp = client.post("/api/feedback", json={"name": "Ann", "email": "a@b.c", "message": ""})
        assert resp.status_code == 400


class TestViewer:

    def test_viewer_page(self, client, stored_pets):
        resp = client.get("/embed/ws-1")
        assert resp.status_code == 200
        soup = BeautifulSoup(resp.text, "html.parser")
        assert soup.title.get_text() == "Pets"
        assert len(soup.select("#cards .card")) == 2
        assert '/api/cards?id=' in resp.text
        assert "5000" in resp.text

    def test_viewer_unknown(self, client):
        resp = client.get("/embed/missing")
        assert resp.status_code == 404
        assert "Worksheet not found" in resp.text

    def test_root(self, client):
        assert client.get("/").json()["message"] == "PawSheets API"


def test_store_dependency_is_shared():
    assert get_store() is get_store()


def test_not_found_is_a_store_error(store):
    with pytest.raises(NotFound):
        store.get_worksheet("nope")
