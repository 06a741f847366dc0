"""Form surfaces the engine reads fields from and writes values to."""

from jobsprint_autofill.browser.surface import FormSurface, StaticFormSurface
from jobsprint_autofill.browser.playwright_surface import PlaywrightFormSurface

__all__ = ["FormSurface", "StaticFormSurface", "PlaywrightFormSurface"]
