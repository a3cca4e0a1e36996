"""
Jinja2 templates for everything written to disk as text.

Synthesized programs, package manifests and graph dumps are stored as .j2
templates in this directory. Use render() to fill them in.
"""

from jinja2 import Environment, FileSystemLoader
from pathlib import Path

_TEMPLATES_DIR = Path(__file__).parent


def _dot_escape(text: str) -> str:
    """Escape a label for a double-quoted DOT string."""
    return str(text).replace("\\", "\\\\").replace('"', '\\"')


def _crate_ident(name: str) -> str:
    """Cargo package name -> Rust crate identifier ('my-lib' -> 'my_lib')."""
    return name.replace("-", "_")


_env = Environment(
    loader=FileSystemLoader(_TEMPLATES_DIR),
    autoescape=False,  # Rust and DOT, not HTML
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)
_env.filters["dot_escape"] = _dot_escape
_env.filters["crate_ident"] = _crate_ident


def render(template_name: str, **kwargs) -> str:
    """Render a template with given parameters.

    Args:
        template_name: Path relative to the templates dir (e.g., "main.rs.j2")
        **kwargs: Template variables

    Returns:
        Rendered text
    """
    template = _env.get_template(template_name)
    return template.render(**kwargs)
