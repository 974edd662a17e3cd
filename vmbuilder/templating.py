"""Rendering of user-supplied command templates."""

from __future__ import annotations

from typing import List, Sequence

from jinja2 import Environment, StrictUndefined, TemplateError

from vmbuilder.exceptions import ConfigurationError

_env = Environment(
    autoescape=False,
    keep_trailing_newline=False,
    undefined=StrictUndefined,
)


def render_command(template: str, name: str, path: str) -> str:
    """Render one command. ``{{ Name }}`` is the VM name, ``{{ Path }}`` the temp dir."""
    try:
        return _env.from_string(template).render(Name=name, Path=path)
    except TemplateError as exc:
        raise ConfigurationError(f"Error preparing modifyvm command: {exc}") from exc


def render_commands(templates: Sequence[str], name: str, path: str) -> List[str]:
    """Render all templates, failing before any of them is used."""
    return [render_command(template, name, path) for template in templates]
