"""
Best-effort natural-language extraction for reminders, emails and locations

Pure functions: text in, structured request (or None) out. No model calls.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, List, Tuple

DEFAULT_REMINDER_TITLE = "Reminder"
DEFAULT_REMINDER_CATEGORY = "voice_assistant"
DEFAULT_EMAIL_SUBJECT = "Message from Voice Assistant"
DEFAULT_EMAIL_BODY = "This message was sent via voice assistant."
DEFAULT_LOCATION = "New York"

@dataclass
class ReminderRequest:
    title: str
    due_date: datetime
    priority: str = "medium"
    category: Optional[str] = DEFAULT_REMINDER_CATEGORY
    description: Optional[str] = None

@dataclass
class EmailRequest:
    to: str
    subject: str
    body: str

# Checked in order; first match wins
_TIME_PATTERNS: List[Tuple[re.Pattern, Optional[timedelta]]] = [
    (re.compile(r'\bin (\d+) hours?\b', re.IGNORECASE), timedelta(hours=1)),
    (re.compile(r'\bin (\d+) minutes?\b', re.IGNORECASE), timedelta(minutes=1)),
    (re.compile(r'\bin (\d+) days?\b', re.IGNORECASE), timedelta(days=1)),
    (re.compile(r'\btomorrow\b', re.IGNORECASE), None),
    (re.compile(r'\bnext week\b', re.IGNORECASE), None),
]
_FIXED_OFFSETS = {"tomorrow": timedelta(days=1), "next week": timedelta(weeks=1)}
_DEFAULT_DUE_OFFSET = timedelta(hours=1)

_HIGH_PRIORITY = re.compile(r'\b(?:urgent|important|asap)\b', re.IGNORECASE)
_LOW_PRIORITY = re.compile(r'\b(?:low priority|when possible|whenever|no rush)\b', re.IGNORECASE)

_REMINDER_STRIP = [
    re.compile(r'^\s*(?:please\s+)?(?:remind me to|remind me|reminder to)\b', re.IGNORECASE),
    re.compile(r'\bin \d+ (?:hours?|minutes?|days?)\b', re.IGNORECASE),
    re.compile(r'\b(?:tomorrow|next week)\b', re.IGNORECASE),
    _HIGH_PRIORITY,
    _LOW_PRIORITY,
]

_EMAIL_ADDRESS = re.compile(
    r'\b(?:send to|to|email)\s+([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})',
    re.IGNORECASE
)
_SUBJECT = re.compile(
    r'\b(subject|about|regarding)\b\s*:?\s*(?:["“]([^"”]+)["”]|(\S.*))',
    re.IGNORECASE | re.DOTALL
)
_SUBJECT_END = re.compile(
    r'[,.;:!?](?:\s|$)|\s(?:body|saying|message|that says)\b',
    re.IGNORECASE
)
_BODY_LEAD_IN = re.compile(
    r'^(?:please\s+)?(?:(?:send|write)\s+(?:an?\s+)?(?:email|e-mail|mail|message)|email|send|write)\b',
    re.IGNORECASE
)
_BODY_MARKER = re.compile(r'^(?:body|saying|message|that says)\b\s*:?', re.IGNORECASE)

# Place is the single word after the lead-in, up to whitespace or punctuation
_LOCATION = re.compile(r'\b(?i:in|for|at)\s+([A-Za-z]+)')
_NOT_A_PLACE = {
    "the", "a", "an", "my", "me", "us", "this", "that", "today", "tonight",
    "tomorrow", "now", "least", "all", "once", "weather", "forecast",
}

def _tidy(text: str) -> str:
    """Collapse whitespace and drop dangling punctuation left by stripping"""
    text = re.sub(r'\s+', ' ', text)
    text = re.sub(r'\s+([,.;:!?])', r'\1', text)
    text = re.sub(r'([,;:])(?:\s*[,;:])+', r'\1', text)
    return text.strip(" ,;:-")

def parse_reminder_text(text: str, now: Optional[datetime] = None) -> Optional[ReminderRequest]:
    """
    Extract a reminder from free text like "remind me to call Sam in 30 minutes, urgent"

    Relative-time phrases are checked in priority order (hours, minutes,
    days, tomorrow, next week); without one the reminder is due in one hour.

    Returns:
        ReminderRequest, or None for blank text
    """
    if not text or not text.strip():
        return None
    now = now or datetime.now()

    due_date = now + _DEFAULT_DUE_OFFSET
    for pattern, unit in _TIME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if unit is None:
            due_date = now + _FIXED_OFFSETS[match.group(0).lower()]
        else:
            due_date = now + int(match.group(1)) * unit
        break

    if _HIGH_PRIORITY.search(text):
        priority = "high"
    elif _LOW_PRIORITY.search(text):
        priority = "low"
    else:
        priority = "medium"

    title = text
    for pattern in _REMINDER_STRIP:
        title = pattern.sub(' ', title)
    title = _tidy(title) or DEFAULT_REMINDER_TITLE

    return ReminderRequest(title=title, due_date=due_date, priority=priority)

def parse_email_text(text: str) -> Optional[EmailRequest]:
    """
    Extract recipient, subject and body from text like
    "email jane@example.com subject Lunch let's meet at noon"

    Returns:
        EmailRequest, or None when no recipient address follows "to",
        "send to" or "email"
    """
    if not text:
        return None
    address = _EMAIL_ADDRESS.search(text)
    if not address:
        return None

    to = address.group(1)
    remaining = text[:address.start()] + " " + text[address.end():]

    subject = DEFAULT_EMAIL_SUBJECT
    match = _SUBJECT.search(remaining)
    if match:
        if match.group(2) is not None:
            subject = match.group(2).strip()
            subject_end = match.end()
        else:
            tail = match.group(3)
            delimiter = _SUBJECT_END.search(tail)
            if delimiter:
                subject = tail[:delimiter.start()].strip()
                cut = delimiter.start()
            elif match.group(1).lower() == "subject":
                # Undelimited "subject X rest...": the subject is the first word
                subject = tail.split()[0]
                cut = len(subject)
            else:
                subject = tail.strip()
                cut = len(tail)
            subject_end = match.start(3) + cut
        subject = subject or DEFAULT_EMAIL_SUBJECT
        remaining = remaining[:match.start()] + " " + remaining[subject_end:]

    body = _tidy(remaining)
    body = _tidy(_BODY_LEAD_IN.sub('', body))
    body = _tidy(_BODY_MARKER.sub('', body))

    return EmailRequest(to=to, subject=subject, body=body or DEFAULT_EMAIL_BODY)

def extract_location(text: str, default: str = DEFAULT_LOCATION) -> str:
    """Place name following "in", "for" or "at", else the default location"""
    for match in _LOCATION.finditer(text or ""):
        candidate = match.group(1)
        if candidate.lower() in _NOT_A_PLACE:
            continue
        return candidate
    return default
