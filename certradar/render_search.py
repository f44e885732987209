"""Text rendering of Certificate Transparency search results."""

from __future__ import annotations

from datetime import date, datetime, timezone

from tabulate import DataRow, Line, TableFormat, tabulate

from .colors import main_header, style
from .models import SearchResult

UTF8_FULL = TableFormat(
    lineabove=Line("┌", "─", "┬", "┐"),
    linebelowheader=Line("╞", "═", "╪", "╡"),
    linebetweenrows=Line("├", "─", "┼", "┤"),
    linebelow=Line("└", "─", "┴", "┘"),
    headerrow=DataRow("│", "│", "│"),
    datarow=DataRow("│", "│", "│"),
    padding=1,
    with_header_hide=None,
)

_HEADERS = ("ID", "Common Name", "Issuer", "Not Before", "Not After")
_ALIGN = ("right", "left", "left", "left", "left")


def _truncate(text: str, limit: int, keep: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    return encoded[:keep].decode("utf-8", errors="ignore") + "..."


def is_date_expired(date_str: str, today: date | None = None) -> bool:
    """Whether a crt.sh date ("2024-01-15T00:00:00" or "2024-01-15") lies before today."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    for pattern in ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%d"):
        try:
            parsed = datetime.strptime(date_str, pattern).date()
        except ValueError:
            continue
        return parsed < today
    return False


def format_search_results(result: SearchResult, limit: int | None = None) -> str:
    """Render found certificates as a table, showing at most limit rows."""
    parts = [
        main_header("Certificate Transparency Search Results"),
        f"Found {style(str(result.total), 'bold')} certificates (Source: {result.source})\n\n",
    ]

    if not result.certificates:
        parts.append("  No certificates found.\n")
        return "".join(parts)

    shown = result.certificates if limit is None else result.certificates[:limit]
    rows = [
        [
            str(cert.crtsh_id),
            _truncate(cert.common_name, 40, 37),
            _truncate(cert.issuer_name, 30, 27),
            cert.not_before,
            style(cert.not_after, "red" if is_date_expired(cert.not_after) else "green"),
        ]
        for cert in shown
    ]
    parts.append(
        tabulate(
            rows,
            headers=_HEADERS,
            tablefmt=UTF8_FULL,
            colalign=_ALIGN,
            disable_numparse=True,
        )
    )

    if limit is not None and len(result.certificates) > limit:
        parts.append(
            f"\n\n  Showing {limit} of {result.total} certificates. Use --limit to see more.\n"
        )

    return "".join(parts)