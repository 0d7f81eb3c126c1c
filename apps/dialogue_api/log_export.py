"""Static transcript exports (plain text and self-contained HTML)."""

from __future__ import annotations

import html
from typing import Iterable, List

from dialogue_agents.roundtable.models import Message, SpeakerDirectory


def render_text(transcript: Iterable[Message], directory: SpeakerDirectory, *, topic: str = "") -> str:
    lines: List[str] = []
    if topic:
        lines.append(f"Topic: {topic}")
        lines.append("")
    for message in transcript:
        lines.append(f"[{message.timestamp.isoformat()}] {directory.label(message.sender_id)}: {message.text}")
    return "\n".join(lines) + "\n"


def render_html(transcript: Iterable[Message], directory: SpeakerDirectory, *, topic: str = "") -> str:
    """Render the transcript as a standalone HTML document.

    Every user-controlled string is escaped; the document has no external assets.
    """

    title = html.escape(topic or "Conversation log")
    rows = []
    for message in transcript:
        rows.append(
            '<li class="message sender-{cls}">'
            '<time datetime="{ts}">{ts}</time> '
            "<strong>{label}</strong>"
            "<p>{text}</p>"
            "</li>".format(
                cls=html.escape(message.sender_id.lower(), quote=True),
                ts=html.escape(message.timestamp.isoformat()),
                label=html.escape(directory.label(message.sender_id)),
                text=html.escape(message.text).replace("\n", "<br>"),
            )
        )
    body = "\n".join(rows)
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{title}</title>\n"
        "<style>body{font-family:sans-serif;max-width:48rem;margin:2rem auto}"
        "li{list-style:none;margin-bottom:1rem}time{color:#666;font-size:.8rem}"
        ".sender-system{color:#888}.sender-summary{background:#f4f4f4;padding:.5rem}</style>\n"
        "</head>\n"
        "<body>\n"
        f"<h1>{title}</h1>\n"
        f'<ol class="transcript">\n{body}\n</ol>\n'
        "</body>\n"
        "</html>\n"
    )
