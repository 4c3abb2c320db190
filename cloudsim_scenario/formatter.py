"""
Plain-text formatting primitives for build summaries.

All functions return plain text using box-drawing characters (no ANSI).
Color is applied separately via colorize() for terminal display.
"""

import os
import sys
from typing import Any, Optional, Sequence, Tuple


def supports_color() -> bool:
    """Detect whether the terminal supports ANSI color output.

    Respects NO_COLOR (https://no-color.org/) and FORCE_COLOR env vars.
    """
    if os.environ.get('NO_COLOR') is not None:
        return False
    if os.environ.get('FORCE_COLOR') is not None:
        return True
    if not hasattr(sys.stdout, 'isatty'):
        return False
    return sys.stdout.isatty()


# ── Box-drawing characters ──────────────────────────────────────────

_HEAVY_H = '═'
_LIGHT_H = '─'

_TL, _TR, _BL, _BR = '┌', '┐', '└', '┘'
_VL = '│'
_TJ, _BJ, _CJ, _LJ, _RJ = '┬', '┴', '┼', '├', '┤'

OK_MARK = '✔'
ERROR_MARK = '✘'


# ── Formatting primitives ──────────────────────────────────────────

def title(text: str, width: int = 60) -> str:
    """Prominent title with heavy-line borders.

    Example::

        ═══════════════ 0 - basic.yaml ═══════════════
    """
    padding = max(width - len(text) - 2, 4)
    left = padding // 2
    right = padding - left
    return f"{_HEAVY_H * left} {text} {_HEAVY_H * right}"


def heading(text: str) -> str:
    """Section heading with light-line underline."""
    return f"  {text}\n  {_LIGHT_H * len(text)}"


def kv_block(items: Sequence[Tuple[str, str]], indent: int = 2) -> str:
    """Aligned key-value pairs with dot leaders.

    Example::

        Datacenters ····· 2
        Hosts ··········· 8
    """
    if not items:
        return ""
    max_key = max(len(k) for k, _ in items)
    prefix = ' ' * indent
    return "\n".join(
        f"{prefix}{key} {'·' * (max_key - len(key) + 2)} {value}"
        for key, value in items
    )


def table(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
    aligns: Optional[Sequence[str]] = None,
) -> str:
    """Box-drawing bordered table.

    Args:
        headers: Column header strings.
        rows: Row data (each row is a sequence of values).
        aligns: Per-column alignment: 'l', 'r' or 'c' (default: left).
    """
    if not headers:
        return ""

    n_cols = len(headers)
    aligns = list(aligns) if aligns is not None else ['l'] * n_cols

    widths = [len(str(h)) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[:n_cols]):
            widths[i] = max(widths[i], len(str(cell)))

    def _cell(value: Any, width: int, align: str) -> str:
        s = str(value)
        if align == 'r':
            return f" {s.rjust(width)} "
        if align == 'c':
            return f" {s.center(width)} "
        return f" {s.ljust(width)} "

    def _rule(left: str, mid: str, right: str) -> str:
        return left + mid.join(_LIGHT_H * (w + 2) for w in widths) + right

    def _row(values: Sequence[Any]) -> str:
        cells = [
            _cell(values[i] if i < len(values) else '', widths[i], aligns[i])
            for i in range(n_cols)
        ]
        return _VL + _VL.join(cells) + _VL

    lines = [_rule(_TL, _TJ, _TR), _row(headers), _rule(_LJ, _CJ, _RJ)]
    lines.extend(_row(row) for row in rows)
    lines.append(_rule(_BL, _BJ, _BR))
    return "\n".join(lines)


def info_line(text: str, indent: int = 2) -> str:
    """Indented informational text with diamond marker."""
    return f"{' ' * indent}◆ {text}"


def status_line(ok: bool, text: str, indent: int = 2) -> str:
    """Indented line marked as success or failure."""
    mark = OK_MARK if ok else ERROR_MARK
    return f"{' ' * indent}{mark} {text}"


# ── ANSI Color Post-Processing ─────────────────────────────────────

_RESET = '\033[0m'
_BOLD = '\033[1m'
_DIM = '\033[2m'
_GREEN = '\033[32m'
_RED = '\033[31m'
_YELLOW = '\033[33m'
_CYAN = '\033[36m'


def colorize(text: str) -> str:
    """Apply ANSI colors to formatted text.

    - Title lines (═══) → bold cyan
    - Underlines and table borders → dim
    - ◆ markers → yellow
    - ✔ lines → green, ✘ lines → red
    """
    return '\n'.join(_colorize_line(line) for line in text.split('\n'))


def _colorize_line(line: str) -> str:
    stripped = line.strip()
    if not stripped:
        return line
    if _HEAVY_H in line and not stripped.startswith(_VL):
        return f"{_BOLD}{_CYAN}{line}{_RESET}"
    if all(c == _LIGHT_H for c in stripped) or stripped[0] in (_TL, _BL, _LJ):
        return f"{_DIM}{line}{_RESET}"
    if _VL in line:
        return f"{_DIM}{_VL}{_RESET}".join(line.split(_VL))
    if stripped.startswith(OK_MARK):
        return f"{_GREEN}{line}{_RESET}"
    if stripped.startswith(ERROR_MARK):
        return f"{_RED}{line}{_RESET}"
    if '◆' in line:
        return line.replace('◆', f"{_YELLOW}◆{_RESET}")
    return line
