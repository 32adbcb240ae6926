# pawsheets/embed.py
from html import escape

from pawsheets.schemas import EmbedSnippets

# Sets every card to the tallest card's height once mounted in a host page,
# where fonts may render differently than in the editor.
EQUALIZE_SCRIPT = """<script>
  (function() {
    var cards = document.querySelectorAll('.card-container > .card');
    var maxHeight = 0;
    cards.forEach(function(card) {
      card.style.minHeight = 'auto';
      maxHeight = Math.max(maxHeight, card.offsetHeight);
    });
    cards.forEach(function(card) {
      card.style.minHeight = maxHeight + 'px';
    });
  })();
</script>"""

IFRAME_STYLE = "border:none;width:100%;height:500px;"


def embed_url(worksheet_id: str, host_origin: str) -> str:
    return f"{host_origin.rstrip('/')}/embed/{worksheet_id}"


def to_embed(markup: str, worksheet_id: str, host_origin: str, equalize: bool = True) -> EmbedSnippets:
    """
    Static HTML is a point-in-time copy of the cards; the iframe points at
    the hosted viewer, which re-renders the live worksheet.
    """
    html_snippet = f"{markup}\n{EQUALIZE_SCRIPT}" if equalize else markup
    src = escape(embed_url(worksheet_id, host_origin), quote=True)
    iframe_snippet = f'<iframe src="{src}" style="{IFRAME_STYLE}"></iframe>'
    return EmbedSnippets(html_snippet=html_snippet, iframe_snippet=iframe_snippet)
