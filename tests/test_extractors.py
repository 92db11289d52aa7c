"""Tests for natural-language reminder, email and location extraction."""

from datetime import datetime, timedelta

from tools.extractors import (
    DEFAULT_EMAIL_BODY,
    DEFAULT_EMAIL_SUBJECT,
    DEFAULT_REMINDER_TITLE,
    extract_location,
    parse_email_text,
    parse_reminder_text,
)

NOW = datetime(2026, 3, 14, 9, 0, 0)


class TestParseReminderText:
    def test_call_sam_in_30_minutes_urgent(self):
        request = parse_reminder_text("remind me to call Sam in 30 minutes, urgent", now=NOW)
        assert request.title == "call Sam"
        assert request.priority == "high"
        assert request.due_date == NOW + timedelta(minutes=30)

    def test_hours_win_over_tomorrow(self):
        request = parse_reminder_text("remind me to water plants in 2 hours tomorrow", now=NOW)
        assert request.due_date == NOW + timedelta(hours=2)

    def test_days(self):
        request = parse_reminder_text("remind me to renew passport in 3 days", now=NOW)
        assert request.due_date == NOW + timedelta(days=3)

    def test_tomorrow(self):
        request = parse_reminder_text("remind me to buy milk tomorrow", now=NOW)
        assert request.due_date == NOW + timedelta(days=1)
        assert request.title == "buy milk"

    def test_next_week(self):
        request = parse_reminder_text("remind me to book flights next week", now=NOW)
        assert request.due_date == NOW + timedelta(weeks=1)

    def test_no_time_phrase_defaults_to_one_hour(self):
        request = parse_reminder_text("remind me to stretch", now=NOW)
        assert request.due_date == NOW + timedelta(hours=1)
        assert request.priority == "medium"

    def test_default_uses_current_time(self):
        before = datetime.now()
        request = parse_reminder_text("remind me to stretch")
        after = datetime.now()
        assert before + timedelta(hours=1) <= request.due_date <= after + timedelta(hours=1)

    def test_low_priority(self):
        request = parse_reminder_text("remind me to tidy the garage, no rush", now=NOW)
        assert request.priority == "low"
        assert request.title == "tidy the garage"

    def test_only_time_phrase_uses_default_title(self):
        request = parse_reminder_text("remind me in 5 minutes", now=NOW)
        assert request.title == DEFAULT_REMINDER_TITLE
        assert request.due_date == NOW + timedelta(minutes=5)

    def test_blank_text_returns_none(self):
        assert parse_reminder_text("   ", now=NOW) is None

    def test_category_defaults_to_voice_assistant(self):
        request = parse_reminder_text("remind me to stretch", now=NOW)
        assert request.category == "voice_assistant"


class TestParseEmailText:
    def test_jane_lunch(self):
        request = parse_email_text("email jane@example.com subject Lunch let's meet at noon")
        assert request.to == "jane@example.com"
        assert request.subject == "Lunch"
        assert request.body == "let's meet at noon"

    def test_quoted_subject(self):
        request = parse_email_text(
            'send an email to bob@example.org subject "Quarterly report" saying the numbers look good'
        )
        assert request.to == "bob@example.org"
        assert request.subject == "Quarterly report"
        assert request.body == "the numbers look good"

    def test_about_with_delimiter(self):
        request = parse_email_text("send to ops@example.com about the outage, servers are back up")
        assert request.subject == "the outage"
        assert request.body == "servers are back up"

    def test_defaults_without_subject_or_body(self):
        request = parse_email_text("email sam@example.com")
        assert request.to == "sam@example.com"
        assert request.subject == DEFAULT_EMAIL_SUBJECT
        assert request.body == DEFAULT_EMAIL_BODY

    def test_no_address_returns_none(self):
        assert parse_email_text("email jane about lunch") is None

    def test_address_without_keyword_returns_none(self):
        assert parse_email_text("jane@example.com is my friend") is None


class TestExtractLocation:
    def test_single_word_place(self):
        assert extract_location("What's the weather in Nowhereville?") == "Nowhereville"

    def test_stops_at_first_boundary(self):
        assert extract_location("weather for Paris, France today") == "Paris"

    def test_skips_time_words(self):
        assert extract_location("what will it be like at the beach") == "New York"

    def test_default_when_missing(self):
        assert extract_location("is it raining", default="London") == "London"
