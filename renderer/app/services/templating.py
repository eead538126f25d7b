"""
HTML rendering service.

Turns validated document content into a complete HTML document ready for
the headless browser.

Design guarantees:
- Deterministic template rendering (Jinja2 + StrictUndefined)
- Every interpolated value is HTML-escaped
- No document content transformation occurs in this module

RENDERING CONTRACT:

Callers supply:
- document_content:
    Validated payload fields, passed through verbatim.
- bindings:
    Engine-generated presentation values (inlined images, issue date).

Bindings must never shadow document content.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError
from markupsafe import Markup


TEMPLATE_ROOT = Path(__file__).resolve().parent.parent / "templates"


class TemplateRenderError(RuntimeError):
    """Raised when HTML template rendering fails."""


_CSS_STRING_ESCAPES = {
    "\\": "\\\\",
    "\"": "\\\"",
    "\n": "\\a ",
    "\r": "\\d ",
    "<": "\\3c ",
    ">": "\\3e ",
}


def css_string(value: Any) -> Markup:
    """
    Escape a value for use inside a double-quoted CSS string, such as
    ``url("...")`` in a <style> block.

    <style> content is raw text to the HTML parser, so HTML entities would
    reach CSS undecoded; backslash escapes are used instead.
    """
    text = "" if value is None else str(value)
    return Markup("".join(_CSS_STRING_ESCAPES.get(ch, ch) for ch in text))


def build_environment(template_root: Path = TEMPLATE_ROOT) -> Environment:
    if not template_root.is_dir():
        raise TemplateRenderError(
            f"Template root does not exist: {template_root}"
        )

    environment = Environment(
        loader=FileSystemLoader(template_root),
        undefined=StrictUndefined,
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    environment.filters["css_string"] = css_string
    return environment


_environment: Optional[Environment] = None


def get_environment() -> Environment:
    global _environment
    if _environment is None:
        _environment = build_environment()
    return _environment


def render_document_html(
    *,
    template_path: str,
    document_content: Dict[str, Any],
    bindings: Dict[str, Any],
    environment: Optional[Environment] = None,
) -> str:
    """
    Render an HTML Jinja template and return the document as a string.

    IMPORTANT INVARIANTS:
    - Document content is passed through verbatim.
    - Bindings are injected strictly for presentation.
    - Bindings MUST NOT override document content fields.
    - On failure, a TemplateRenderError is raised.
    """
    env = environment or get_environment()

    render_context: Dict[str, Any] = dict(document_content)

    for key, value in bindings.items():
        if key in render_context:
            raise TemplateRenderError(
                f"Render context collision on key '{key}'. "
                "Bindings must not override document content fields."
            )
        render_context[key] = value

    try:
        template = env.get_template(template_path)
        return template.render(render_context)
    except TemplateError as exc:
        raise TemplateRenderError(
            f"Failed to render template '{template_path}': {exc}"
        ) from exc
