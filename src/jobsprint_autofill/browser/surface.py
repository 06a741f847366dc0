"""Form surface interface and an in-process implementation."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from jobsprint_autofill.core.exceptions import SurfaceError
from jobsprint_autofill.core.models import Control, FieldKind, FormField
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class FormSurface(ABC):
    """The page, tab or document a session fills."""

    @abstractmethod
    async def discover_fields(self) -> List[FormField]:
        """Discover fillable fields in document order."""
        pass

    @abstractmethod
    async def apply_value(self, field: FormField, value: str) -> None:
        """Set a field's value and emit the host's change notifications."""
        pass

    @abstractmethod
    async def find_controls(self) -> List[Control]:
        """Find action controls (buttons) in document order."""
        pass


class StaticFormSurface(FormSurface):
    """
    Form surface backed by in-process data.

    Holds a fixed list of fields and controls and records every applied
    value. Used for scripted runs and tests.
    """

    def __init__(self, fields: Sequence[FormField], controls: Optional[Sequence[Control]] = None):
        self.fields = list(fields)
        self.controls = list(controls or [])
        self.values: Dict[str, str] = {}
        self.notifications: List[Dict[str, str]] = []
        self.invoked: List[str] = []
        self.logger = logger.bind(component="static_surface")

    async def discover_fields(self) -> List[FormField]:
        return list(self.fields)

    async def apply_value(self, field: FormField, value: str) -> None:
        if field.id not in {f.id for f in self.fields}:
            raise SurfaceError(f"Unknown field '{field.id}'")
        self.values[field.id] = value
        for event in ("input", "change"):
            self.notifications.append({"field_id": field.id, "event": event})
        self.logger.debug("Value applied", field_id=field.id, value=value)

    async def find_controls(self) -> List[Control]:
        return list(self.controls)

    def add_control(self, text: str, visible: bool = True, enabled: bool = True) -> Control:
        control = Control(text=text, visible=visible, enabled=enabled)
        control.on_invoke = lambda: self.invoked.append(control.text)
        self.controls.append(control)
        return control

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StaticFormSurface":
        """
        Build a surface from a JSON-style description.

        Args:
            data: ``{"fields": [...], "controls": [...]}`` where fields follow
                the FormField schema and controls are ``{"text", "visible",
                "enabled"}`` objects or plain strings

        Returns:
            The surface
        """
        try:
            fields = []
            for index, raw in enumerate(data.get("fields", [])):
                raw = dict(raw)
                raw.setdefault("id", f"field_{index}")
                raw["kind"] = FieldKind(raw.get("kind", "text"))
                fields.append(FormField(**raw))
        except (TypeError, ValueError) as e:
            raise SurfaceError(f"Invalid form description: {e}") from e

        surface = cls(fields)
        for raw in data.get("controls", []):
            if isinstance(raw, str):
                surface.add_control(raw)
            else:
                surface.add_control(raw["text"], raw.get("visible", True), raw.get("enabled", True))
        return surface
