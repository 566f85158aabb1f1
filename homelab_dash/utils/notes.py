# homelab_dash/utils/notes.py
"""
Field extraction from free-text Blinko notes.

Every rule is a small pure function so each heuristic can be tested on its
own. None of them raise: bad input degrades to "", None or False.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from ..models import Note, RSSItem, TodoItem
from .timeutils import parse_timestamp

# --- todo ---

DONE_PREFIX_RE = re.compile(r"^(?:✓|\[x\])\s*", re.IGNORECASE)
COLUMN_TAG_RE = re.compile(r"#(?:today|今天|later|稍后|以后)\s*", re.IGNORECASE)
CHECKBOX_RE = re.compile(r"- \[(?: |x)\]", re.IGNORECASE)
LATER_TAGS = ("#later", "#稍后", "#以后")

# --- rss ---

URL_RE = re.compile(r"https?://[^\s]+")
HASHTAG_RE = re.compile(r"#[^\s#]+")
EMOJI_RE = re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # symbols, pictographs, emoticons, transport, flags
    "\u2300-\u23FF"  # misc technical
    "\u2600-\u27BF"  # misc symbols, dingbats
    "\u2B00-\u2BFF"  # arrows, stars
    "\uFE0F\u200D"  # variation selector, zero-width joiner
    "]"
)
RT_PREFIX_RE = re.compile(r"^RT by @[\w.\-]+:\s*", re.IGNORECASE)
CATEGORY_PREFIX_RE = re.compile(r"^\[[^\]]*\]\s*")
LABEL_PREFIX_RE = re.compile(r"^(?:EN|CN|Score)\s*[:：]\s*", re.IGNORECASE)
SCORE_PREFIX_RE = re.compile(r"^\d{1,2}\s*/\s*10\b\s*")
LEADING_PUNCT_RE = re.compile(r"^[\s\-–—:：|·•,，.。;；!！?？>*~]+")
SPACES_RE = re.compile(r"\s{2,}")
INSIGHT_RE = re.compile(r"💡\s*EN\s*[:：]\s*(.+)")
SCORE_RE = re.compile(r"Score\s*[:：]\s*(\d{1,2})\s*/\s*10", re.IGNORECASE)
STAR_TAGS = ("#starred", "#star")

TITLE_MIN = 10
TITLE_RETRY_MIN = 5
TITLE_FLOOR = 3
TITLE_MAX = 120
NEW_WINDOW = timedelta(hours=24)


# ----------------- Todo -----------------

def is_done(content: str, archived: bool = False) -> bool:
    if archived:
        return True
    content = content or ""
    return content.startswith("✓") or content[:3].lower() == "[x]"


def todo_column(content: str) -> str:
    lowered = (content or "").lower()
    if any(tag in lowered for tag in LATER_TAGS):
        return "later"
    # #today / #今天 are accepted but today is the default anyway
    return "today"


def clean_todo_content(content: str) -> str:
    s = DONE_PREFIX_RE.sub("", content or "", count=1)
    s = COLUMN_TAG_RE.sub("", s)
    s = CHECKBOX_RE.sub("", s)
    return s.strip()


def parse_todo(note: Note) -> TodoItem:
    return TodoItem(
        id=note.id,
        content=clean_todo_content(note.content),
        done=is_done(note.content, note.is_archived),
        column=todo_column(note.content),
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


def format_todo_content(content: str, column: str, done: bool) -> str:
    """Inverse of parse_todo for the done and column fields only."""
    tag = "#later" if column == "later" else "#today"
    prefix = "✓ " if done else ""
    return f"{prefix}{content} {tag}"


def _epoch(value: str) -> float:
    dt = parse_timestamp(value)
    return dt.timestamp() if dt else 0.0


def sort_todos(items: Iterable[TodoItem]) -> List[TodoItem]:
    """Open todos first, then most recently updated."""
    return sorted(items, key=lambda t: (t.done, -_epoch(t.updated_at)))


# ----------------- RSS -----------------

def note_lines(content: str) -> List[str]:
    return [line.strip() for line in (content or "").split("\n") if line.strip()]


def extract_url(content: str, proxy_host: Optional[str] = None, proxy_port: Optional[int] = None) -> str:
    """First http(s) URL in the note; a proxy host written without its port gets one."""
    m = URL_RE.search(content or "")
    if not m:
        return ""
    url = m.group(0)
    if not proxy_host or not proxy_port:
        return url
    try:
        parts = urlsplit(url)
        if parts.hostname == proxy_host.lower() and parts.port is None:
            return urlunsplit(parts._replace(netloc=f"{parts.netloc}:{proxy_port}"))
    except ValueError:
        return url
    return url


def url_source(url: str) -> str:
    if not url:
        return ""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def clean_title(text: str) -> str:
    s = EMOJI_RE.sub("", text or "")
    s = URL_RE.sub("", s)
    s = HASHTAG_RE.sub("", s)
    s = SPACES_RE.sub(" ", s).strip()
    # prefixes can stack, e.g. "RT by @x: [AI] Score: 8/10 ..."
    while True:
        before = s
        for prefix in (RT_PREFIX_RE, CATEGORY_PREFIX_RE, LABEL_PREFIX_RE, SCORE_PREFIX_RE, LEADING_PUNCT_RE):
            s = prefix.sub("", s, count=1)
        if s == before:
            break
    return s.strip()


def _too_weak(title: str) -> bool:
    return not title or len(title) < TITLE_MIN or title.lower() in ("true", "false")


def insight_title(lines: Sequence[str]) -> str:
    """Cleaned text of the first '💡 EN: ...' line, or ""."""
    for line in lines:
        m = INSIGHT_RE.search(line)
        if m:
            return clean_title(m.group(1))[:TITLE_MAX]
    return ""


def first_usable_line(lines: Sequence[str]) -> str:
    for line in lines:
        if line.startswith("http") or line.startswith("#"):
            continue
        candidate = clean_title(line)
        if len(candidate) > TITLE_MIN:
            return candidate[:TITLE_MAX]
    return ""


def extract_title(lines: Sequence[str], source: str = "") -> str:
    title = clean_title(lines[0]) if lines else ""
    if _too_weak(title):
        title = insight_title(lines) or title
    if len(title) < TITLE_RETRY_MIN:
        title = first_usable_line(lines) or title
    if len(title) < TITLE_FLOOR:
        title = source or "Untitled"
    return title


def extract_summary(lines: Sequence[str]) -> Optional[str]:
    kept = [line for line in lines[1:] if not line.startswith("http") and not line.startswith("#")]
    summary = " ".join(kept).strip()
    return summary or None


def extract_score(content: str) -> Optional[int]:
    m = SCORE_RE.search(content or "")
    if not m:
        return None
    score = int(m.group(1))
    return score if 1 <= score <= 10 else None


def is_starred(content: str, pinned: bool = False) -> bool:
    return pinned or any(tag in (content or "") for tag in STAR_TAGS)


def is_new(created_at: str, now: Optional[datetime] = None) -> bool:
    created = parse_timestamp(created_at)
    if created is None:
        return False
    now = now or datetime.now(timezone.utc)
    return now - created < NEW_WINDOW


def parse_rss_item(
    note: Note,
    now: Optional[datetime] = None,
    proxy_host: Optional[str] = None,
    proxy_port: Optional[int] = None,
) -> RSSItem:
    content = note.content or ""
    lines = note_lines(content)
    url = extract_url(content, proxy_host, proxy_port)
    source = url_source(url)
    return RSSItem(
        id=note.id,
        title=extract_title(lines, source),
        url=url,
        source=source,
        summary=extract_summary(lines),
        score=extract_score(content),
        is_new=is_new(note.created_at, now),
        is_starred=is_starred(content, note.is_top),
        published_at=note.created_at,
    )


def sort_rss_items(items: Iterable[RSSItem]) -> List[RSSItem]:
    """Starred first, then higher score (missing = 0), then newest."""
    return sorted(items, key=lambda i: (not i.is_starred, -(i.score or 0), -_epoch(i.published_at)))
