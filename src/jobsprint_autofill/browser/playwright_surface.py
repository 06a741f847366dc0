"""Form surface over a live browser page driven by Playwright."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from jobsprint_autofill.browser.surface import FormSurface
from jobsprint_autofill.config import settings
from jobsprint_autofill.core.exceptions import SurfaceError
from jobsprint_autofill.core.models import Control, FieldKind, FormField
from jobsprint_autofill.utils.logging import get_logger

logger = get_logger(__name__)

FIELD_ATTRIBUTE = "data-jobsprint-id"
CONTROL_SELECTOR = 'button, input[type="submit"], input[type="button"], a[role="button"]'

_HELPERS = """
  const clean = (t) => (t || '').replace(/\\s+/g, ' ').trim();
  const norm = (t) => clean(t).toLowerCase();
  const labelFor = (el) => {
    const label = (el.labels && el.labels[0])
      || (el.id && document.querySelector(`label[for="${CSS.escape(el.id)}"]`));
    return label ? clean(label.textContent) : '';
  };
  const radioGroup = (el) =>
    document.querySelectorAll(`input[type="radio"][name="${CSS.escape(el.name)}"]`);
"""

DISCOVER_SCRIPT = """() => {
%s
  const SKIP = ['hidden', 'password', 'submit', 'button', 'image', 'file', 'reset'];
  const EXACT = ['email', 'tel', 'url', 'number'];
  const describe = (el) => {
    const by = el.getAttribute('aria-labelledby');
    if (by) {
      const node = document.getElementById(by);
      if (node) return clean(node.textContent);
    }
    return clean(el.getAttribute('aria-label'));
  };
  const container = (el) => {
    const parent = el.parentElement;
    if (!parent) return '';
    const copy = parent.cloneNode(true);
    copy.querySelectorAll('input, textarea, select').forEach((n) => n.remove());
    const text = clean(copy.textContent);
    return text.length < 200 ? text : '';
  };
  const seenGroups = new Set();
  const fields = [];
  document.querySelectorAll('input, textarea, select').forEach((el, i) => {
    const type = (el.getAttribute('type') || '').toLowerCase();
    if (SKIP.includes(type) || el.offsetParent === null) return;
    let kind = 'text';
    let options = [];
    let label = labelFor(el);
    if (el.tagName === 'SELECT') {
      kind = 'select';
      options = Array.from(el.options).map((o) => clean(o.textContent));
    } else if (el.tagName === 'TEXTAREA') {
      kind = 'textarea';
    } else if (type === 'radio') {
      if (!el.name || seenGroups.has(el.name)) return;
      seenGroups.add(el.name);
      kind = 'radio-group';
      options = Array.from(radioGroup(el)).map((r) => labelFor(r) || r.value);
      const legend = el.closest('fieldset') && el.closest('fieldset').querySelector('legend');
      label = legend ? clean(legend.textContent) : '';
    } else if (type === 'checkbox') {
      kind = 'checkbox';
    } else if (EXACT.includes(type)) {
      kind = type;
    }
    el.setAttribute('%s', String(i));
    fields.push({
      id: String(i),
      kind,
      options,
      label,
      description: describe(el),
      placeholder: clean(el.getAttribute('placeholder')),
      container_text: container(el),
      name: el.name || null,
      required: !!el.required,
    });
  });
  return fields;
}""" % (_HELPERS, FIELD_ATTRIBUTE)

APPLY_SCRIPT = """({id, value}) => {
%s
  const el = document.querySelector(`[%s="${id}"]`);
  if (!el) return false;
  const fire = (node) => {
    node.dispatchEvent(new Event('input', { bubbles: true }));
    node.dispatchEvent(new Event('change', { bubbles: true }));
  };
  if (el.tagName === 'SELECT') {
    const option = Array.from(el.options).find((o) => norm(o.textContent) === norm(value));
    if (!option) return false;
    el.value = option.value;
    fire(el);
    return true;
  }
  const type = (el.getAttribute('type') || '').toLowerCase();
  if (type === 'radio') {
    for (const radio of radioGroup(el)) {
      if (norm(labelFor(radio) || radio.value) === norm(value)) {
        radio.checked = true;
        fire(radio);
        return true;
      }
    }
    return false;
  }
  if (type === 'checkbox') {
    el.checked = ['yes', 'true', '1', 'checked'].includes(norm(value));
    fire(el);
    return true;
  }
  el.value = value;
  fire(el);
  return true;
}""" % (_HELPERS, FIELD_ATTRIBUTE)

CONTROLS_SCRIPT = """(selector) =>
  Array.from(document.querySelectorAll(selector)).map((b, index) => ({
    index,
    text: (b.textContent || b.value || b.getAttribute('aria-label') || '').replace(/\\s+/g, ' ').trim(),
    visible: b.offsetParent !== null,
    enabled: !b.disabled,
  }))
"""


class PlaywrightFormSurface(FormSurface):
    """
    Form surface for a Playwright page.

    Discovered elements are tagged with a data attribute so values can be
    applied to the same element later. Radio buttons sharing a name become
    one radio-group field.
    """

    def __init__(self, page: Any, surface_id: Optional[str] = None):
        """
        Initialize the surface.

        Args:
            page: Playwright ``Page`` (or a compatible object)
            surface_id: Identifier used in errors, defaults to the page URL
        """
        self.page = page
        self.surface_id = surface_id or getattr(page, "url", None) or "page"
        self.logger = logger.bind(component="playwright_surface", surface_id=self.surface_id)

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        url: str,
        headless: Optional[bool] = None,
        user_data_dir: Optional[str] = None,
    ) -> AsyncIterator["PlaywrightFormSurface"]:
        """
        Launch Chromium, open ``url`` and yield a surface for it.

        Args:
            url: Page holding the form
            headless: Run without a window, defaults to settings
            user_data_dir: Persistent profile directory (keeps logins), defaults to settings
        """
        try:
            from playwright.async_api import async_playwright
        except ImportError as e:
            raise SurfaceError("Playwright is not installed, install the 'browser' extra", url) from e

        headless = settings.browser_headless if headless is None else headless
        user_data_dir = user_data_dir or settings.browser_user_data_dir

        async with async_playwright() as playwright:
            if user_data_dir:
                context = await playwright.chromium.launch_persistent_context(user_data_dir, headless=headless)
            else:
                browser = await playwright.chromium.launch(headless=headless)
                context = await browser.new_context()
            try:
                page = await context.new_page()
                await page.goto(url)
                logger.info("Page opened", url=url, persistent=bool(user_data_dir))
                yield cls(page, surface_id=url)
            finally:
                await context.close()
                if not user_data_dir:
                    await browser.close()

    async def discover_fields(self) -> List[FormField]:
        raw_fields = await self._evaluate(DISCOVER_SCRIPT)
        if not isinstance(raw_fields, list):
            raise SurfaceError("Field discovery returned malformed data", self.surface_id)

        fields = []
        for raw in raw_fields:
            try:
                fields.append(self._to_field(raw))
            except (KeyError, TypeError, ValueError) as e:
                raise SurfaceError(f"Malformed field descriptor: {e}", self.surface_id) from e

        self.logger.info("Fields discovered", count=len(fields))
        return fields

    async def apply_value(self, field: FormField, value: str) -> None:
        applied = await self._evaluate(APPLY_SCRIPT, {"id": field.opaque_ref or field.id, "value": value})
        if not applied:
            raise SurfaceError(f"Field '{field.id}' could not be set on the page", self.surface_id)
        self.logger.debug("Value applied", field_id=field.id)

    async def find_controls(self) -> List[Control]:
        raw_controls = await self._evaluate(CONTROLS_SCRIPT, CONTROL_SELECTOR)
        if not isinstance(raw_controls, list):
            raise SurfaceError("Control discovery returned malformed data", self.surface_id)

        controls = []
        for raw in raw_controls:
            locator = self.page.locator(CONTROL_SELECTOR).nth(raw["index"])
            controls.append(
                Control(
                    text=raw.get("text", ""),
                    visible=bool(raw.get("visible")),
                    enabled=bool(raw.get("enabled")),
                    on_invoke=locator.click,
                    ref=raw["index"],
                )
            )
        return controls

    async def _evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except Exception as e:
            self.logger.error("Page script failed", error=str(e), error_type=type(e).__name__)
            raise SurfaceError(f"Page script failed: {e}", self.surface_id) from e

    @staticmethod
    def _to_field(raw: Dict[str, Any]) -> FormField:
        return FormField(
            id=str(raw["id"]),
            kind=FieldKind(raw.get("kind", "text")),
            options=list(raw.get("options") or []),
            opaque_ref=str(raw["id"]),
            label=raw.get("label") or None,
            description=raw.get("description") or None,
            placeholder=raw.get("placeholder") or None,
            container_text=raw.get("container_text") or None,
            name=raw.get("name"),
            required=bool(raw.get("required")),
        )
