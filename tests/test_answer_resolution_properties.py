"""Property-based tests for type-aware answer resolution and application."""

import asyncio
import pytest
from hypothesis import given, strategies as st, settings
from unittest.mock import AsyncMock

from jobsprint_autofill.autofill.answers import (
    AnswerApplier,
    AnswerTypeClassifier,
    available_options,
    resolve_value,
)
from jobsprint_autofill.browser.surface import StaticFormSurface
from jobsprint_autofill.core.exceptions import SurfaceError
from jobsprint_autofill.core.models import AnswerType, FieldKind, FormField


option_text = st.text(alphabet="abcdefg -", min_size=0, max_size=12)


class TestAnswerTypeClassifier:
    """Field kind to answer type mapping."""

    @pytest.mark.parametrize("kind,expected", [
        (FieldKind.SELECT, AnswerType.CHOICE),
        (FieldKind.RADIO_GROUP, AnswerType.CHOICE),
        (FieldKind.CHECKBOX, AnswerType.CHOICE),
        (FieldKind.EMAIL, AnswerType.EXACT),
        (FieldKind.TEL, AnswerType.EXACT),
        (FieldKind.URL, AnswerType.EXACT),
        (FieldKind.NUMBER, AnswerType.EXACT),
        (FieldKind.TEXT, AnswerType.TEXT),
        (FieldKind.TEXTAREA, AnswerType.TEXT),
    ])
    def test_classify(self, kind, expected):
        assert AnswerTypeClassifier().classify(FormField(id="f", kind=kind)) == expected

    def test_exact_entry_stays_exact_on_choice_field(self):
        field = FormField(id="f", kind=FieldKind.SELECT, options=["Yes", "No"])
        classifier = AnswerTypeClassifier()
        assert classifier.effective_type(field, AnswerType.EXACT) == AnswerType.EXACT
        assert classifier.effective_type(field, AnswerType.TEXT) == AnswerType.CHOICE

    def test_field_structure_wins_otherwise(self):
        field = FormField(id="f", kind=FieldKind.TEXT)
        assert AnswerTypeClassifier().effective_type(field, AnswerType.CHOICE) == AnswerType.TEXT


class TestResolveValue:
    """Resolution rules per answer type."""

    def test_choice_prefers_first_containment_match(self):
        options = ["Yes - I am authorized", "Yes with sponsorship", "No"]
        assert resolve_value(AnswerType.CHOICE, "Yes", options) == "Yes - I am authorized"

    def test_choice_equality_beats_earlier_containment(self):
        options = ["Yes, with conditions", "yes"]
        assert resolve_value(AnswerType.CHOICE, "YES", options) == "yes"

    def test_choice_answer_containing_option(self):
        assert resolve_value(AnswerType.CHOICE, "No, I do not", ["Yes", "No"]) == "No"

    def test_choice_without_match_is_none(self):
        assert resolve_value(AnswerType.CHOICE, "Maybe", ["Yes", "No"]) is None

    def test_choice_without_options_is_none(self):
        assert resolve_value(AnswerType.CHOICE, "Yes", []) is None

    def test_exact_requires_equality(self):
        options = ["Yes", "Yes - with conditions", "No"]
        assert resolve_value(AnswerType.EXACT, "yes", options) == "Yes"
        assert resolve_value(AnswerType.EXACT, "Yes - with", options) is None

    def test_exact_without_options_is_literal(self):
        assert resolve_value(AnswerType.EXACT, "jane@example.com", []) == "jane@example.com"

    def test_text_is_literal(self):
        assert resolve_value(AnswerType.TEXT, "  Five years  ", ["ignored"]) == "  Five years  "

    @given(st.lists(option_text, min_size=0, max_size=6), option_text)
    @settings(max_examples=100)
    def test_choice_result_is_always_an_offered_option(self, options, answer):
        result = resolve_value(AnswerType.CHOICE, answer, options)
        if result is not None:
            assert result in options

    @given(st.lists(option_text, min_size=1, max_size=6), option_text)
    @settings(max_examples=100)
    def test_exact_result_equals_answer_ignoring_case(self, options, answer):
        result = resolve_value(AnswerType.EXACT, answer, options)
        if result is not None:
            assert result in options
            assert result.strip().lower() == answer.strip().lower()


class TestAvailableOptions:
    """Options a field offers for resolution."""

    def test_checkbox_defaults_to_yes_no(self):
        assert available_options(FormField(id="c", kind=FieldKind.CHECKBOX)) == ["Yes", "No"]

    def test_declared_options_are_kept_in_order(self):
        field = FormField(id="s", kind=FieldKind.SELECT, options=["B", "A"])
        assert available_options(field) == ["B", "A"]

    def test_text_field_has_none(self):
        assert available_options(FormField(id="t")) == []


class TestAnswerApplier:
    """Applying resolved values through a surface."""

    @pytest.mark.asyncio
    async def test_apply_choice_sets_option_and_notifies(self):
        field = FormField(id="auth", kind=FieldKind.RADIO_GROUP, options=["Yes - I am authorized", "No"])
        surface = StaticFormSurface([field])

        applied = await AnswerApplier(surface).apply(field, AnswerType.CHOICE, "Yes")

        assert applied is True
        assert surface.values == {"auth": "Yes - I am authorized"}
        assert [n["event"] for n in surface.notifications] == ["input", "change"]

    @pytest.mark.asyncio
    async def test_unresolvable_answer_leaves_field_untouched(self):
        field = FormField(id="auth", kind=FieldKind.SELECT, options=["Yes", "No"])
        surface = StaticFormSurface([field])

        applied = await AnswerApplier(surface).apply(field, AnswerType.CHOICE, "Sometimes")

        assert applied is False
        assert surface.values == {}
        assert surface.notifications == []

    @pytest.mark.asyncio
    async def test_checkbox_uses_default_options(self):
        field = FormField(id="agree", kind=FieldKind.CHECKBOX)
        surface = StaticFormSurface([field])

        assert await AnswerApplier(surface).apply(field, AnswerType.CHOICE, "yes")
        assert surface.values["agree"] == "Yes"

    @pytest.mark.asyncio
    async def test_surface_errors_propagate(self):
        field = FormField(id="name")
        surface = AsyncMock()
        surface.apply_value.side_effect = SurfaceError("detached")

        with pytest.raises(SurfaceError):
            await AnswerApplier(surface).apply(field, AnswerType.TEXT, "Jane")

    @given(st.sampled_from(["Yes", "No", "yes", "NO", "Maybe"]))
    @settings(max_examples=20)
    def test_applied_value_is_always_an_option(self, answer):
        field = FormField(id="q", kind=FieldKind.SELECT, options=["Yes", "No"])
        surface = StaticFormSurface([field])

        applied = asyncio.run(AnswerApplier(surface).apply(field, AnswerType.CHOICE, answer))

        if applied:
            assert surface.values["q"] in field.options
        else:
            assert "q" not in surface.values
