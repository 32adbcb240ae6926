"""
HttpStore against the real app through TestClient, which speaks the same
request() interface as a requests.Session.
"""

from unittest import mock

import pytest
import requests

from pawsheets.errors import NotFound, UpstreamFailure
from pawsheets.schemas import Feedback, Theme
from pawsheets.session import EditingSession
from pawsheets.store import HttpStore
from pawsheets.worksheet import load_record


@pytest.fixture
def http_store(client):
    return HttpStore(api_base="", session=client)


class TestHttpStore:

    def test_get_worksheet(self, http_store, stored_pets):
        record = http_store.get_worksheet("ws-1")
        assert load_record(record).rows[1][1].value == "Fido"

    def test_missing_worksheet(self, http_store):
        with pytest.raises(NotFound):
            http_store.get_worksheet("missing")

    def test_refusal_surfaces_as_upstream_failure(self, http_store, client, stored_pets):
        with pytest.raises(UpstreamFailure, match="409"):
            http_store._call("DELETE", "/worksheets/ws-1/rows/0")

    def test_connection_error(self):
        session = mock.Mock()
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(UpstreamFailure, match="refused"):
            HttpStore(api_base="http://nowhere", session=session).get_worksheet("x")
        url = session.request.call_args.args[1]
        assert url == "http://nowhere/api/worksheets/x"

    def test_upload_image(self, http_store):
        stored = http_store.upload_image("u-1", "dog.png", b"\x89PNG")
        assert stored.path.startswith("u-1/")
        assert stored.url.endswith(stored.path)

    def test_themes_and_feedback(self, http_store, store):
        http_store.save_theme(Theme(user_id="u-1", name="Mine", styles={"backgroundColor": "#101010"}))
        themes = http_store.list_themes("u-1")
        assert [t.name for t in themes] == ["Mine"]
        http_store.add_feedback(Feedback(name="A", email="a@b.c", message="hi"))
        assert store.feedback[0]["message"] == "hi"

    def test_embed_and_preview(self, http_store, stored_pets):
        assert "ws-1" in http_store.embed_snippets("ws-1", origin="https://x.example")["iframe_snippet"]
        assert http_store.preview_png("ws-1").startswith(b"\x89PNG")

    def test_no_push_channel(self, http_store):
        assert http_store.subscribe("ws-1", lambda record: None) is None

    def test_templates(self, http_store, store, stored_pets):
        copied = http_store.copy_worksheet("ws-1", "Puppies")
        summaries = http_store.list_worksheets("user-1")
        assert [s.id for s in summaries] == [copied["id"], "ws-1"]
        assert summaries[0].name == "Puppies"
        http_store.delete_worksheet(copied["id"])
        assert [s.id for s in http_store.list_worksheets("user-1")] == ["ws-1"]
        with pytest.raises(NotFound):
            http_store.delete_worksheet(copied["id"])


class TestSessionOverHttp:

    def test_edit_and_flush(self, http_store, store):
        session = EditingSession.open(http_store, user_id="editor", autosave_delay=60)
        try:
            session.set_cell(0, 1, "Name")
            session.set_cell(1, 1, "Biscuit")
            session.apply_theme("paper")
            assert session.flush()
            assert session.last_error is None

            saved = load_record(store.get_or_create_for_user("editor"))
            assert saved.rows[1][1].value == "Biscuit"
            assert saved.styles.background_color == "#fdf6e3"
        finally:
            session.close()

    def test_upload_then_save(self, http_store, store):
        session = EditingSession.open(http_store, user_id="editor", autosave_delay=60)
        try:
            url = session.upload_image(1, 0, "cat.png", b"\x89PNG")
            session.flush()
            assert load_record(store.get_or_create_for_user("editor")).rows[1][0].value == url
        finally:
            session.close()
