"""HTML page rendering for the series list and poster views."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from html import escape
from textwrap import dedent
from typing import Sequence

from .config import Settings
from .models import CatalogStats, SearchItem, SeriesRecord, is_usable_cover


@dataclass(slots=True)
class PageContext:
    """Everything the list and poster pages display."""

    records: Sequence[SeriesRecord]
    stats: CatalogStats
    api_available: bool
    search_results: Sequence[SearchItem] = field(default_factory=list)
    search_query: str = ""
    error_message: str = ""
    success_message: str = ""


PAGE_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>__APP_NAME__</title>
    <style>
        :root {
            color-scheme: dark;
            font-family: 'Inter', 'Segoe UI', system-ui, -apple-system, sans-serif;
            --surface: #141414;
            --text-muted: #a6a6a6;
            --outline: #2b2b2b;
            --success: #3ecf8e;
            --danger: #ff6b6b;
            background: #000000;
            color: #f5f5f5;
        }
        body { margin: 0; }
        main { max-width: 960px; margin: 0 auto; padding: 2rem 1.5rem 4rem; }
        nav { display: flex; gap: 1rem; margin-bottom: 1.5rem; }
        a { color: inherit; }
        .card {
            background: var(--surface);
            border: 1px solid var(--outline);
            border-radius: 16px;
            padding: 1.25rem 1.5rem;
            margin-bottom: 1.25rem;
        }
        .muted { color: var(--text-muted); }
        .message { border-radius: 12px; padding: 0.75rem 1rem; margin-bottom: 1rem; }
        .message.error { border: 1px solid var(--danger); color: var(--danger); }
        .message.success { border: 1px solid var(--success); color: var(--success); }
        table { width: 100%; border-collapse: collapse; }
        th, td { text-align: left; padding: 0.5rem; border-bottom: 1px solid var(--outline); }
        progress { width: 8rem; }
        .posters { display: grid; grid-template-columns: repeat(auto-fill, minmax(160px, 1fr)); gap: 1rem; }
        .poster img { width: 100%; border-radius: 8px; }
        .poster .placeholder { aspect-ratio: 2 / 3; border: 1px dashed var(--outline); border-radius: 8px; }
        form.inline { display: inline; }
    </style>
</head>
<body>
<main>
    <header>
        <h1>__APP_NAME__</h1>
        <p class="muted">__STATS__ · OMDb __API_STATUS__</p>
    </header>
    <nav>
        <a href="/">List</a>
        <a href="/mylist">Posters</a>
        <a href="/pdf">Download PDF</a>
        <a href="/api/series">JSON</a>
    </nav>
    __MESSAGES__
    __BODY__
</main>
</body>
</html>
    """
)


def _render_messages(context: PageContext) -> str:
    parts: list[str] = []
    if context.error_message:
        parts.append(
            f'<div class="message error">{escape(context.error_message)}</div>'
        )
    if context.success_message:
        parts.append(
            f'<div class="message success">{escape(context.success_message)}</div>'
        )
    return "\n".join(parts)


def _render_search(context: PageContext) -> str:
    query = escape(context.search_query, quote=True)
    rows = []
    for item in context.search_results:
        rows.append(
            "<tr>"
            f"<td>{escape(item.title)}</td>"
            f"<td>{escape(item.year)}</td>"
            f"<td>{escape(item.external_id)}</td>"
            '<td><form method="post" action="/add" class="inline">'
            f'<input type="hidden" name="identifier" value="{escape(item.external_id, quote=True)}" />'
            '<button type="submit">Add</button></form></td>'
            "</tr>"
        )
    results = ""
    if rows:
        results = "<table><tbody>" + "".join(rows) + "</tbody></table>"
    return f"""
    <section class="card">
        <form method="get" action="/search">
            <input type="search" name="q" value="{query}" placeholder="Search series" />
            <button type="submit">Search</button>
        </form>
        <form method="post" action="/add">
            <input type="text" name="identifier" placeholder="IMDb id or exact title" />
            <button type="submit">Add</button>
        </form>
        {results}
    </section>
    """


def _render_table(records: Sequence[SeriesRecord]) -> str:
    if not records:
        return '<section class="card"><p class="muted">No series tracked yet.</p></section>'

    rows = []
    for record in records:
        rows.append(
            "<tr>"
            f"<td>{escape(record.display_title())}</td>"
            f"<td>{escape(record.status)}</td>"
            f'<td><progress max="100" value="{min(record.progress, 100)}"></progress> '
            f"{record.progress}%</td>"
            '<td><form method="post" action="/update" class="inline">'
            f'<input type="hidden" name="id" value="{record.id}" />'
            f'<input type="number" name="episodes" min="0" value="{record.episodes_watched}" />'
            f" / {record.total_episodes} "
            '<button type="submit">Save</button></form></td>'
            '<td><form method="post" action="/delete" class="inline">'
            f'<input type="hidden" name="id" value="{record.id}" />'
            '<button type="submit">Delete</button></form></td>'
            "</tr>"
        )
    return (
        '<section class="card"><table>'
        "<thead><tr><th>Series</th><th>Status</th><th>Progress</th>"
        "<th>Episodes</th><th></th></tr></thead><tbody>"
        + "".join(rows)
        + "</tbody></table></section>"
    )


def _render_posters(records: Sequence[SeriesRecord]) -> str:
    if not records:
        return '<section class="card"><p class="muted">No series tracked yet.</p></section>'

    tiles = []
    for record in records:
        if is_usable_cover(record.cover_url):
            cover = (
                f'<img src="{escape(record.cover_url or "", quote=True)}" '
                f'alt="{escape(record.title, quote=True)}" loading="lazy" />'
            )
        else:
            cover = '<div class="placeholder"></div>'
        tiles.append(
            '<div class="poster">'
            f"{cover}"
            f"<strong>{escape(record.display_title())}</strong>"
            f'<div class="muted">{record.episodes_watched}/{record.total_episodes}'
            f" · {record.progress}%</div>"
            "</div>"
        )
    return '<section class="posters">' + "".join(tiles) + "</section>"


def _render_page(settings: Settings, context: PageContext, body: str) -> str:
    stats = (
        f"{context.stats.total} series · {context.stats.fully_watched} fully watched"
    )
    replacements = {
        "__APP_NAME__": escape(settings.app_name),
        "__STATS__": escape(stats),
        "__API_STATUS__": "available" if context.api_available else "unavailable",
        "__MESSAGES__": _render_messages(context),
        "__BODY__": body,
    }
    # One pass, so substituted text is never scanned for placeholders again.
    pattern = re.compile("|".join(re.escape(placeholder) for placeholder in replacements))
    return pattern.sub(lambda match: replacements[match.group(0)], PAGE_TEMPLATE)


def render_index_page(settings: Settings, context: PageContext) -> str:
    """Return the HTML for the main list page."""

    body = _render_search(context) + _render_table(context.records)
    return _render_page(settings, context, body)


def render_poster_page(settings: Settings, context: PageContext) -> str:
    """Return the HTML for the poster grid page."""

    return _render_page(settings, context, _render_posters(context.records))
