"""
Tests for the embed snippets.
"""

from bs4 import BeautifulSoup

from pawsheets.embed import EQUALIZE_SCRIPT, IFRAME_STYLE, embed_url, to_embed
from pawsheets.renderer import render_worksheet


class TestToEmbed:

    def test_html_snippet_is_markup_plus_equalizer(self, pets):
        _, markup = render_worksheet(pets)
        snippets = to_embed(markup, "ws-1", "https://pawsheets.example")
        assert snippets.html_snippet.startswith(markup)
        assert snippets.html_snippet.endswith(EQUALIZE_SCRIPT)
        assert ".card-container > .card" in snippets.html_snippet

    def test_without_equalizer(self, pets):
        _, markup = render_worksheet(pets)
        assert to_embed(markup, "ws-1", "https://pawsheets.example", equalize=False).html_snippet == markup

    def test_iframe_points_at_viewer(self):
        snippets = to_embed("<div></div>", "ws-1", "https://pawsheets.example/")
        iframe = BeautifulSoup(snippets.iframe_snippet, "html.parser").iframe
        assert iframe["src"] == "https://pawsheets.example/embed/ws-1"
        assert iframe["style"] == IFRAME_STYLE

    def test_iframe_src_is_escaped(self):
        snippets = to_embed("", 'a"b', "https://pawsheets.example")
        assert "a&quot;b" in snippets.iframe_snippet
        iframe = BeautifulSoup(snippets.iframe_snippet, "html.parser").iframe
        assert iframe["src"] == 'https://pawsheets.example/embed/a"b'

    def test_embed_url(self):
        assert embed_url("abc", "http://localhost:8000") == "http://localhost:8000/embed/abc"
        assert embed_url("abc", "http://localhost:8000/") == "http://localhost:8000/embed/abc"

    def test_static_snippet_keeps_the_cards(self, pets):
        _, markup = render_worksheet(pets)
        soup = BeautifulSoup(to_embed(markup, "ws-1", "http://h").html_snippet, "html.parser")
        assert len(soup.select(".card-container > .card")) == 2
        assert soup.script is not None
