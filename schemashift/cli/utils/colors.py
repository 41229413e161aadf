"""
schemashift CLI — UI toolkit.

Styled output primitives built on Click:

    Output helpers:
        success(), error(), warning(), info(), dim(), bold()

    Structural elements:
        banner()        — branded header with box drawing
        kv()            — key-value pair, aligned
        bullet()        — bulleted list item
        table()         — minimal aligned table

All output degrades gracefully on non-colour terminals
(click.style handles NO_COLOR / TERM=dumb).
"""

from __future__ import annotations

import shutil
from typing import Optional, Sequence

import click

# ═══════════════════════════════════════════════════════════════════════════
# Terminal helpers
# ═══════════════════════════════════════════════════════════════════════════

_TERM_WIDTH: Optional[int] = None


def _tw() -> int:
    """Terminal width, cached and clamped to a sane range."""
    global _TERM_WIDTH
    if _TERM_WIDTH is None:
        _TERM_WIDTH = max(40, min(shutil.get_terminal_size((80, 24)).columns, 120))
    return _TERM_WIDTH


# ═══════════════════════════════════════════════════════════════════════════
# Basic styled output
# ═══════════════════════════════════════════════════════════════════════════


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    """Print error message in red (to stderr)."""
    click.echo(click.style(message, fg="red"), err=True)


def warning(message: str) -> None:
    """Print warning message in yellow."""
    click.echo(click.style(message, fg="yellow"))


def info(message: str) -> None:
    """Print info message in cyan."""
    click.echo(click.style(message, fg="cyan"))


def dim(message: str) -> None:
    """Print dimmed message."""
    click.echo(click.style(message, dim=True))


def bold(message: str) -> str:
    """Return bold-styled text (does not echo)."""
    return click.style(message, bold=True)


# ═══════════════════════════════════════════════════════════════════════════
# Box-drawing characters
# ═══════════════════════════════════════════════════════════════════════════

# Heavy box set
_H_TL = "\u250f"   # ┏
_H_TR = "\u2513"   # ┓
_H_BL = "\u2517"   # ┗
_H_BR = "\u251b"   # ┛
_H_H  = "\u2501"   # ━
_H_V  = "\u2503"   # ┃

# Light box set
_L_H  = "\u2500"   # ─

# Other
_BULLET = "\u2022"     # •
_CHECK  = "\u2713"     # ✓
_CROSS  = "\u2717"     # ✗
_CIRCLE = "\u25cb"     # ○


# ═══════════════════════════════════════════════════════════════════════════
# Banner
# ═══════════════════════════════════════════════════════════════════════════


def banner(
    title: str = "schemashift",
    subtitle: str = "",
    *,
    width: Optional[int] = None,
    fg: str = "cyan",
) -> None:
    """
    Print a bordered banner with centred title.

        ┏━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━┓
        ┃                    schemashift                       ┃
        ┃                 SQL schema migrations                ┃
        ┗━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━┛
    """
    w = width or min(_tw(), 60)
    inner = w - 2
    top = f"{_H_TL}{_H_H * inner}{_H_TR}"
    bot = f"{_H_BL}{_H_H * inner}{_H_BR}"
    title_line = f"{_H_V}{title.center(inner)}{_H_V}"

    click.echo(click.style(top, fg=fg))
    click.echo(click.style(title_line, fg=fg, bold=True))
    if subtitle:
        sub_line = f"{_H_V}{subtitle.center(inner)}{_H_V}"
        click.echo(click.style(sub_line, fg=fg))
    click.echo(click.style(bot, fg=fg))


# ═══════════════════════════════════════════════════════════════════════════
# Key / Value
# ═══════════════════════════════════════════════════════════════════════════


def kv(
    key: str,
    value: str,
    *,
    key_width: int = 20,
    indent: int = 2,
    key_fg: str = "white",
    val_fg: str = "cyan",
) -> None:
    """
    Print an aligned key-value pair.

        Watermark:        3
        Database:         sqlite
    """
    prefix = " " * indent
    k = click.style(f"{key}:", fg=key_fg)
    v = click.style(str(value), fg=val_fg)
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{prefix}{k}{padding}{v}")


# ═══════════════════════════════════════════════════════════════════════════
# Lists / Table
# ═══════════════════════════════════════════════════════════════════════════


def bullet(text: str, *, indent: int = 2, fg: str = "white", err: bool = False) -> None:
    """Print a bulleted list item."""
    prefix = " " * indent
    click.echo(
        f"{prefix}{click.style(_BULLET, fg='cyan')} {click.style(text, fg=fg)}",
        err=err,
    )


def table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    header_fg: str = "cyan",
    row_fg: str = "white",
    indent: int = 2,
) -> None:
    """
    Print a minimal aligned table.

        Version  Name           State
        ──────── ────────────── ─────────
        1        create_users   applied
        2        add_email      pending
    """
    prefix = " " * indent
    ncols = len(headers)

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            if i < ncols:
                widths[i] = max(widths[i], len(str(cell)))
    widths = [w + 2 for w in widths]

    hdr = "".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    click.echo(f"{prefix}{click.style(hdr, fg=header_fg, bold=True)}")

    sep = "".join(_L_H * w for w in widths)
    click.echo(f"{prefix}{click.style(sep, dim=True)}")

    for row in rows:
        line = "".join(
            str(cell).ljust(widths[i]) if i < len(widths) else str(cell)
            for i, cell in enumerate(row)
        )
        click.echo(f"{prefix}{click.style(line, fg=row_fg)}")
