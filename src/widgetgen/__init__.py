"""
widgetgen - declarative widget layout compiler.

A widget is described once as a JSON layout tree whose property values are
literals, ``{{path}}`` bindings or Mapbox-style S-expressions. The tree is
lowered to three targets:

- Kotlin Jetpack Glance composables (``widgetgen.backends.kotlin``)
- Svelte Native markup (``widgetgen.backends.svelte``)
- interpreted HTML/CSS for previews (``widgetgen.backends.html``)
"""

from widgetgen._version import get_version

__version__ = get_version()

__all__ = ["__version__", "get_version"]
