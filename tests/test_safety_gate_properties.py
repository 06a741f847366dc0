"""Property-based tests for the auto-proceed safety gate."""

import asyncio
import pytest
from hypothesis import given, strategies as st, settings
from unittest.mock import AsyncMock, MagicMock

from jobsprint_autofill.core.models import Control, ControlClass
from jobsprint_autofill.core.safety import (
    DANGEROUS_KEYWORDS,
    PROCEED_KEYWORDS,
    ControlClassifier,
    SafetyGate,
)


filler = st.sampled_from(["", " ", "the ", " now", " & ", "Save and ", " >>"])


class TestControlClassifierProperties:
    """Keyword classification of control text."""

    @given(
        prefix=filler,
        dangerous=st.sampled_from(DANGEROUS_KEYWORDS),
        middle=filler,
        proceed=st.sampled_from(PROCEED_KEYWORDS),
        upper=st.booleans(),
    )
    @settings(max_examples=100)
    def test_dangerous_keyword_always_wins(self, prefix, dangerous, middle, proceed, upper):
        text = f"{prefix}{proceed}{middle}{dangerous}"
        if upper:
            text = text.upper()

        classification = ControlClassifier().classify_text(text)

        assert classification.control_class == ControlClass.DANGEROUS
        assert classification.is_dangerous

    @pytest.mark.parametrize("text,expected", [
        ("Submit Application", ControlClass.DANGEROUS),
        ("Continue & Submit", ControlClass.DANGEROUS),
        ("Review your answers", ControlClass.DANGEROUS),
        ("Next", ControlClass.PROCEED),
        ("Save and Continue", ControlClass.PROCEED),
        ("Cancel", ControlClass.NEUTRAL),
        ("", ControlClass.NEUTRAL),
    ])
    def test_known_labels(self, text, expected):
        assert ControlClassifier().classify_text(text).control_class == expected


class TestSafetyGate:
    """Selection and invocation of proceed controls."""

    def setup_method(self):
        self.gate = SafetyGate()

    def test_hidden_or_disabled_proceed_is_not_eligible(self):
        assert self.gate.may_auto_invoke(Control("Next"))
        assert not self.gate.may_auto_invoke(Control("Next", visible=False))
        assert not self.gate.may_auto_invoke(Control("Next", enabled=False))
        assert not self.gate.may_auto_invoke(Control("Submit"))

    def test_find_dangerous(self):
        controls = [Control("Back"), Control("Submit"), Control("Next"), Control("Confirm")]
        assert [c.text for c in self.gate.find_dangerous(controls)] == ["Submit", "Confirm"]

    def test_selects_first_eligible_in_order(self):
        controls = [
            Control("Submit"),
            Control("Next", visible=False),
            Control("Continue"),
            Control("Next"),
        ]
        assert self.gate.select_proceed_control(controls).text == "Continue"

    @pytest.mark.asyncio
    async def test_auto_proceed_invokes_exactly_once(self):
        first = MagicMock(return_value=None)
        second = MagicMock(return_value=None)
        controls = [Control("Continue", on_invoke=first), Control("Next", on_invoke=second)]

        invoked = await self.gate.auto_proceed(controls, delay=0, session_id="s1")

        assert invoked is controls[0]
        first.assert_called_once()
        second.assert_not_called()
        record = self.gate.get_audit_log()[-1]
        assert record.invoked is True
        assert record.session_id == "s1"
        assert record.to_dict()["control_class"] == "proceed"

    @pytest.mark.asyncio
    async def test_awaits_async_invocations(self):
        click = AsyncMock()
        await self.gate.auto_proceed([Control("Next", on_invoke=click)], delay=0)
        click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_never_invokes_dangerous_controls(self):
        submit = MagicMock(return_value=None)
        invoked = await self.gate.auto_proceed([Control("Submit & Continue", on_invoke=submit)], delay=0)

        assert invoked is None
        submit.assert_not_called()
        assert self.gate.get_audit_log()[-1].reason == "no proceed control found"

    @pytest.mark.asyncio
    async def test_cancellation_after_delay_aborts(self):
        click = MagicMock(return_value=None)
        invoked = await self.gate.auto_proceed(
            [Control("Next", on_invoke=click)], delay=0, cancelled=lambda: True
        )

        assert invoked is None
        click.assert_not_called()
        assert self.gate.get_audit_log()[-1].reason == "session cancelled"

    @pytest.mark.asyncio
    async def test_control_disabled_during_delay_is_not_invoked(self):
        click = MagicMock(return_value=None)
        control = Control("Next", on_invoke=click)

        async def disable_soon():
            control.enabled = False

        task = asyncio.create_task(disable_soon())
        invoked = await self.gate.auto_proceed([control], delay=0.01)
        await task

        assert invoked is None
        click.assert_not_called()
        assert self.gate.get_audit_log()[-1].reason == "control no longer eligible"

    def test_audit_log_limit(self):
        for _ in range(3):
            asyncio.run(self.gate.auto_proceed([], delay=0))
        assert len(self.gate.get_audit_log()) == 3
        assert len(self.gate.get_audit_log(limit=2)) == 2

    @given(st.lists(
        st.tuples(
            st.sampled_from(["Next", "Continue", "Submit", "Apply now", "Back", "Save"]),
            st.booleans(),
            st.booleans(),
        ),
        max_size=8,
    ))
    @settings(max_examples=50)
    def test_invoked_control_is_always_safe(self, specs):
        gate = SafetyGate()
        clicks = []
        controls = []
        for text, visible, enabled in specs:
            control = Control(text, visible=visible, enabled=enabled)
            control.on_invoke = lambda c=control: clicks.append(c)
            controls.append(control)

        invoked = asyncio.run(gate.auto_proceed(controls, delay=0))

        assert len(clicks) <= 1
        if invoked is not None:
            assert clicks == [invoked]
            assert gate.classify(invoked) == ControlClass.PROCEED
            assert invoked.visible and invoked.enabled
        for control in controls:
            if gate.classify(control) == ControlClass.DANGEROUS:
                assert control not in clicks
