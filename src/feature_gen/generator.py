"""Test code generation from the CRIF.

Rendering is a plain tree-to-text step: the template receives the CRIF's
``to_dict()`` tree and owns all surface syntax. Nothing here inspects the
feature or decides what to emit.
"""

from __future__ import annotations

import re
from importlib import resources
from pathlib import Path

from jinja2 import Environment, StrictUndefined

from feature_gen.models import FeatureCrif

DEFAULT_TEMPLATE = "pytest.py.j2"


class TestGenerator:
    """Renders CRIF trees through a Jinja2 template."""

    __test__ = False  # not a pytest test class

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["docstring"] = docstring_text

    def render(self, template: str, crif: FeatureCrif) -> str:
        """Render *crif* with the given template source."""
        return self.env.from_string(template).render(crif.to_dict())

    def render_file(self, template_path: Path, crif: FeatureCrif) -> str:
        """Render *crif* with a template read from disk."""
        return self.render(template_path.read_text(encoding="utf-8"), crif)


def docstring_text(value: object) -> str:
    """Escape *value* for use inside a triple-quoted docstring."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def default_template() -> str:
    """Return the bundled pytest template."""
    template = resources.files("feature_gen") / "templates" / DEFAULT_TEMPLATE
    return template.read_text(encoding="utf-8")


def output_filename(file_name: str) -> str:
    """Name of the generated module for a feature file stem.

    "BankImport" -> "test_bank_import.py"
    """
    return f"test_{snake_case(file_name) or 'feature'}.py"


def snake_case(name: str) -> str:
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    name = "".join(ch if ("_" + ch).isidentifier() else "_" for ch in name)
    name = re.sub(r"_+", "_", name)
    return name.strip("_").lower()
