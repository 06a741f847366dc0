"""Type-aware resolution and application of stored answers."""

from typing import List, Optional, Sequence

from jobsprint_autofill.core.models import AnswerType, FieldKind, FormField
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)

CHECKBOX_OPTIONS = ["Yes", "No"]


class AnswerTypeClassifier:
    """Maps a field's structural kind to an answer type."""

    CHOICE_KINDS = frozenset({FieldKind.SELECT, FieldKind.RADIO_GROUP, FieldKind.CHECKBOX})
    EXACT_KINDS = frozenset({FieldKind.EMAIL, FieldKind.TEL, FieldKind.URL, FieldKind.NUMBER})

    def classify(self, field: FormField) -> AnswerType:
        if field.kind in self.CHOICE_KINDS:
            return AnswerType.CHOICE
        if field.kind in self.EXACT_KINDS:
            return AnswerType.EXACT
        return AnswerType.TEXT

    def effective_type(self, field: FormField, stored_type: Optional[AnswerType]) -> AnswerType:
        """Combine the field's type with the type an entry was stored with.

        An entry recorded as ``exact`` keeps exact matching on a choice field;
        otherwise the field's structure decides.
        """
        field_type = self.classify(field)
        if field_type == AnswerType.CHOICE and stored_type == AnswerType.EXACT:
            return AnswerType.EXACT
        return field_type


def available_options(field: FormField) -> List[str]:
    """Options a value may be resolved against for this field."""
    if field.options:
        return list(field.options)
    if field.kind == FieldKind.CHECKBOX:
        return list(CHECKBOX_OPTIONS)
    return []


def _normalize(value: str) -> str:
    return value.strip().lower()


def resolve_value(answer_type: AnswerType, answer: str, options: Sequence[str]) -> Optional[str]:
    """Resolve the concrete value to apply, or None when no safe mapping exists.

    Choice answers try equality first, then containment in either direction,
    taking the first option in display order. Exact answers only accept
    equality when options exist. Text answers are used verbatim.
    """
    if answer_type == AnswerType.TEXT:
        return answer

    normalized_answer = _normalize(answer)

    if answer_type == AnswerType.EXACT:
        if not options:
            return answer
        for option in options:
            if _normalize(option) == normalized_answer:
                return option
        return None

    for option in options:
        if _normalize(option) == normalized_answer:
            return option
    if not normalized_answer:
        return None
    for option in options:
        normalized_option = _normalize(option)
        if not normalized_option:
            continue
        if normalized_answer in normalized_option or normalized_option in normalized_answer:
            return option
    return None


class AnswerApplier:
    """Resolves an answer against a field and applies it through the surface."""

    def __init__(self, surface):
        self.surface = surface
        self.logger = logger.bind(component="answer_applier")

    def resolve(
        self,
        field: FormField,
        answer_type: AnswerType,
        answer: str,
        options: Optional[Sequence[str]] = None,
    ) -> Optional[str]:
        if options is None:
            options = available_options(field)

        value = resolve_value(answer_type, answer, options)
        if value is None:
            self.logger.warning(
                "No safe option for answer",
                field_id=field.id,
                answer=answer,
                answer_type=answer_type.value,
                available_options=list(options),
            )
        elif value != answer:
            self.logger.info("Matched option", field_id=field.id, answer=answer, matched=value)
        return value

    async def apply_value(self, field: FormField, value: str) -> None:
        # The surface is responsible for emitting change notifications
        await self.surface.apply_value(field, value)

    async def apply(
        self,
        field: FormField,
        answer_type: AnswerType,
        answer: str,
        options: Optional[Sequence[str]] = None,
    ) -> bool:
        """Apply ``answer`` to ``field`` in one call.

        Convenience form of ``resolve`` followed by ``apply_value``. Sessions
        call the two steps separately so they can record the resolved value.

        Returns False when the answer could not be mapped safely, leaving the
        field untouched. Surface failures propagate.
        """
        value = self.resolve(field, answer_type, answer, options)
        if value is None:
            return False
        await self.apply_value(field, value)
        return True
