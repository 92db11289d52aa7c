"""Natural-language extraction helpers and the action dispatcher"""
from .extractors import (
    ReminderRequest,
    EmailRequest,
    parse_reminder_text,
    parse_email_text,
    extract_location,
)

__all__ = [
    'ReminderRequest', 'EmailRequest',
    'parse_reminder_text', 'parse_email_text', 'extract_location',
]
