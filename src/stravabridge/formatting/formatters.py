"""Text formatting helpers for Telegram HTML messages."""
import html
import math
import re
from typing import Any, List, Optional

from stravabridge.analysis.comparison import parse_start
from stravabridge.analysis.pace import NO_DATA
from stravabridge.analysis.stream_stats import safe_num

TELEGRAM_CHUNK_LEN = 3500

_PLAIN_TEXT_RULES = [
    (re.compile(r"<br\s*/?>", re.I), "\n"),
    (re.compile(r"</p>", re.I), "\n"),
    (re.compile(r"</div>", re.I), "\n"),
    (re.compile(r"</h\d>", re.I), "\n"),
    (re.compile(r"<li>", re.I), "- "),
    (re.compile(r"</li>", re.I), "\n"),
    (re.compile(r"<[^>]*>"), ""),
]


def sec_to_hms(sec: Any) -> str:
    """Format seconds as "h:mm:ss" (or "m:ss" under an hour)."""
    total = safe_num(sec)
    if total is None:
        return NO_DATA
    total = int(math.floor(total + 0.5))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def escape_html(value: Any) -> str:
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def html_to_plain_text(markup: Optional[str]) -> str:
    """Strip the small HTML subset used in messages down to plain text."""
    text = str(markup or "")
    for pattern, repl in _PLAIN_TEXT_RULES:
        text = pattern.sub(repl, text)
    text = html.unescape(text.replace("&nbsp;", " "))
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def format_datetime_local(iso: Optional[str]) -> str:
    """Render an ISO timestamp as "YYYY-MM-DD HH:MM" in its own wall-clock time."""
    dt = parse_start(iso)
    if dt is None:
        return NO_DATA
    return dt.strftime("%Y-%m-%d %H:%M")


def chunk_text(text: str, max_len: int = TELEGRAM_CHUNK_LEN) -> List[str]:
    """
    Split text into messages of at most `max_len` characters.

    Cuts at the last newline before the limit unless that newline sits in the
    first 60% of the chunk, in which case it cuts hard at the limit. When more
    than one chunk results, each gets a bold "(i/n)" header.
    """
    if len(text) <= max_len:
        return [text]

    parts: List[str] = []
    rest = text
    while len(rest) > max_len:
        cut = rest.rfind("\n", 0, max_len + 1)
        if cut < max_len * 0.6:
            cut = max_len
        parts.append(rest[:cut])
        rest = rest[cut:].lstrip("\n")
    if rest:
        parts.append(rest)

    if len(parts) == 1:
        return parts
    return [f"<b>({i}/{len(parts)})</b>\n{p}" for i, p in enumerate(parts, start=1)]
