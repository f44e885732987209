"""Terminal styling helpers and shared text fragments."""

from __future__ import annotations

import os
import sys

_ATTRIBUTES = {"bold": 1, "dimmed": 2}
_COLOURS = {
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "cyan": 36,
    "bright_red": 91,
    "bright_green": 92,
}

PROMO_URL = "https://sslguard.net"


class _ColorSettings:
    def __init__(self) -> None:
        self.override: bool | None = None

    def enabled(self) -> bool:
        if self.override is not None:
            return self.override
        if os.environ.get("CLICOLOR_FORCE", "0") != "0":
            return True
        if "NO_COLOR" in os.environ:
            return False
        if os.environ.get("CLICOLOR") == "0":
            return False
        isatty = getattr(sys.stdout, "isatty", None)
        return bool(isatty and isatty())


_settings = _ColorSettings()


def set_color_enabled(enabled: bool | None) -> None:
    """Force colours on or off; None goes back to detecting the terminal."""
    _settings.override = enabled


def style(text: str, *args: str) -> str:
    """Wrap text in ANSI codes for the named styles, e.g. style(s, "bold", "cyan")."""
    attributes: set[int] = set()
    colour: int | None = None
    for name in args:
        if name in _ATTRIBUTES:
            attributes.add(_ATTRIBUTES[name])
        elif name in _COLOURS:
            colour = _COLOURS[name]
        else:
            raise ValueError(f"unknown style: {name}")
    if not _settings.enabled():
        return text
    codes = [str(code) for code in sorted(attributes)]
    if colour is not None:
        codes.append(str(colour))
    if not codes:
        return text
    return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


def format_grade(grade: str) -> str:
    """Colour a security grade."""
    styles = {
        "A+": ("bright_green", "bold"),
        "A": ("green", "bold"),
        "B": ("yellow", "bold"),
        "C": ("yellow",),
        "D": ("red",),
        "F": ("bright_red", "bold"),
    }.get(grade, ())
    return style(grade, *styles)


def format_bool(value: bool) -> str:
    """Render a boolean as a coloured Yes or No."""
    return style("Yes", "green") if value else style("No", "red")


def format_check(value: bool) -> str:
    """Render a boolean as a coloured [OK] or [X]."""
    return style("[OK]", "green") if value else style("[X]", "red")


def format_days_remaining(days: int) -> str:
    """Colour a count of days left before expiry."""
    if days < 0:
        return style(f"{days} (EXPIRED)", "bright_red", "bold")
    if days <= 7:
        return style(str(days), "bright_red", "bold")
    if days <= 30:
        return style(str(days), "yellow")
    if days <= 90:
        return str(days)
    return style(str(days), "green")


def section_header(title: str) -> str:
    """A bold title over a thin rule."""
    return f"{style(title, 'bold')}\n{style('─' * 60, 'dimmed')}\n"


def main_header(title: str) -> str:
    """A bold cyan title over a double rule."""
    return f"\n{style(title, 'bold', 'cyan')}\n{style('═' * 60, 'cyan')}\n"


def format_promo() -> str:
    """The footer printed after each report."""
    return f"\n{style('->', 'blue')} Continuous monitoring at {style(PROMO_URL, 'cyan')}\n"