"""Tests for question extraction and prompt cleaning."""

import pytest
from hypothesis import given, strategies as st, settings

from jobsprint_autofill.autofill.question import QuestionExtractor, clean_question_text
from jobsprint_autofill.core.models import FieldKind, FormField


class TestCleanQuestionText:
    """Prompt normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("  What is   your\n name? ", "What is your name?"),
        ("Email address *", "Email address"),
        ("* Email address", "Email address"),
        ("Phone number (required)", "Phone number"),
        ("Phone number (Required) *", "Phone number"),
        ("Visa status †", "Visa status"),
        ("- Start date", "Start date"),
        ("", ""),
        (None, ""),
        ("***", ""),
    ])
    def test_cleaning(self, raw, expected):
        assert clean_question_text(raw) == expected

    def test_truncates_to_max_length(self):
        assert clean_question_text("a" * 50, max_length=10) == "a" * 10

    @given(st.text(max_size=200))
    @settings(max_examples=100)
    def test_cleaning_is_idempotent(self, text):
        once = clean_question_text(text, max_length=1000)
        assert clean_question_text(once, max_length=1000) == once
        assert once == once.strip()


class TestQuestionExtractor:
    """Source priority for field questions."""

    def setup_method(self):
        self.extractor = QuestionExtractor(max_length=300)

    def test_label_wins(self):
        field = FormField(
            id="f1",
            label="Full name *",
            description="Your name",
            placeholder="Jane Doe",
            container_text="Full name Jane Doe",
        )
        assert self.extractor.extract(field) == "Full name"

    def test_falls_through_empty_sources_in_order(self):
        field = FormField(id="f1", label="  ", description=None, placeholder="Enter your city")
        assert self.extractor.extract(field) == "Enter your city"

    def test_description_before_placeholder(self):
        field = FormField(id="f1", description="LinkedIn profile URL", placeholder="https://")
        assert self.extractor.extract(field) == "LinkedIn profile URL"

    def test_container_text_is_last_resort(self):
        field = FormField(id="f1", kind=FieldKind.CHECKBOX, container_text="I agree to the terms")
        assert self.extractor.extract(field) == "I agree to the terms"

    def test_marker_only_label_is_skipped(self):
        field = FormField(id="f1", label="*", placeholder="Years of experience")
        assert self.extractor.extract(field) == "Years of experience"

    def test_no_sources_yields_empty_string(self):
        assert self.extractor.extract(FormField(id="f1")) == ""
