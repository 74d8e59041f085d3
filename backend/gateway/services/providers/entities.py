"""
Entity shielding for providers that honor ``translate="no"`` markup.

URLs, e-mail addresses, @mentions, #hashtags and ``{placeholders}`` are
wrapped in ``<span translate="no">`` and the text is sent as HTML; the
response is unwrapped and unescaped back to plain text.
"""
import html
import re

ENTITY_PATTERN = re.compile(
    r"(https?://[^\s<>\"]+"
    r"|[\w.+-]+@[\w-]+(?:\.[\w-]+)+"
    r"|(?<!\w)[@#][\w-]+"
    r"|\{\{?[^{}\s]+\}?\})"
)

_SPAN_PATTERN = re.compile(r'<span translate="no">(.*?)</span>', re.DOTALL)
_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)


def shield_entities(text: str) -> str:
    """Escape a plain text and wrap protected entities."""
    parts = []
    last = 0
    for match in ENTITY_PATTERN.finditer(text):
        parts.append(html.escape(text[last:match.start()], quote=False))
        parts.append(f'<span translate="no">{html.escape(match.group(0), quote=False)}</span>')
        last = match.end()
    parts.append(html.escape(text[last:], quote=False))
    return "".join(parts).replace("\n", "<br>")


def unshield_entities(markup: str) -> str:
    """Inverse of shield_entities for a translated response."""
    text = _SPAN_PATTERN.sub(lambda m: m.group(1), markup)
    text = _BREAK_PATTERN.sub("\n", text)
    return html.unescape(text)
