"""Step catalog discovery.

Scans Python source for step definitions: methods of a class decorated with a
``given``/``when``/``then`` marker whose first argument is the pattern text::

    class AuthSteps:
        @given("I am logged in")
        def i_am_logged_in(self) -> None: ...

Discovery is best-effort. A marker without a literal pattern is skipped and
the step simply shows up as unimplemented downstream.
"""

from __future__ import annotations

import ast
import inspect
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from feature_gen.models import StepDefinition, StepParameter
from feature_gen.runtime import STEP_ATTRIBUTE

logger = logging.getLogger(__name__)

STEP_MARKERS = ("given", "when", "then")
MARKER_SUFFIX = "_step"


class StepCatalogBuilder(Protocol):
    """Anything that can produce the run's step definitions."""

    def build(self) -> tuple[StepDefinition, ...]: ...


class SourceCatalogBuilder:
    """Builds the catalog by walking the AST of Python source files."""

    def __init__(self, paths: Iterable[Path], source_root: Path) -> None:
        self.paths = list(paths)
        self.source_root = source_root

    def build(self) -> tuple[StepDefinition, ...]:
        definitions: list[StepDefinition] = []
        for path in self._source_files():
            try:
                source = path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("Skipping unreadable step file %s: %s", path, exc)
                continue
            try:
                found = analyze_source(source, module_name(path, self.source_root))
            except SyntaxError as exc:
                logger.warning("Skipping step file %s: %s", path, exc)
                continue
            logger.debug("Found %d step(s) in %s", len(found), path)
            definitions.extend(found)
        return tuple(definitions)

    def _source_files(self) -> list[Path]:
        files: list[Path] = []
        for path in self.paths:
            if path.is_dir():
                files.extend(sorted(path.rglob("*.py")))
            elif path.suffix == ".py" and path.is_file():
                files.append(path)
            else:
                logger.debug("No step sources at %s", path)
        return files


def build_catalog(paths: Iterable[Path], source_root: Path) -> tuple[StepDefinition, ...]:
    """Build the step catalog from files and directories of Python source."""
    return SourceCatalogBuilder(paths, source_root).build()


def module_name(path: Path, source_root: Path) -> str:
    """Dotted module path of a source file relative to *source_root*."""
    try:
        relative = path.resolve().relative_to(source_root.resolve())
    except ValueError:
        relative = Path(path.name)
    parts = list(relative.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def analyze_source(source: str, module: str = "") -> list[StepDefinition]:
    """Extract step definitions from one module's source text.

    Raises SyntaxError if the source does not parse.
    """
    tree = ast.parse(source)
    definitions: list[StepDefinition] = []
    _visit_body(tree.body, module, owner=None, out=definitions)
    return definitions


def _visit_body(
    body: list[ast.stmt], module: str, owner: str | None, out: list[StepDefinition]
) -> None:
    for node in body:
        if isinstance(node, ast.ClassDef):
            _visit_body(node.body, module, owner=node.name, out=out)
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and owner:
            out.extend(_analyze_method(node, module, owner))


def _analyze_method(
    func: ast.FunctionDef | ast.AsyncFunctionDef, module: str, owner: str
) -> list[StepDefinition]:
    definitions: list[StepDefinition] = []
    parameters: tuple[StepParameter, ...] | None = None
    for decorator in func.decorator_list:
        if not isinstance(decorator, ast.Call):
            continue
        keyword = _marker_keyword(decorator.func)
        if keyword is None:
            continue
        pattern = _pattern_argument(decorator)
        if not pattern:
            continue
        if parameters is None:
            parameters = _method_parameters(func)
        definitions.append(StepDefinition(
            keyword=keyword,
            pattern=pattern,
            owner=owner,
            namespace=module,
            method=func.name,
            parameters=parameters,
        ))
    return definitions


def _marker_keyword(node: ast.expr) -> str | None:
    """Return "Given"/"When"/"Then" for a step marker, else None."""
    if isinstance(node, ast.Name):
        name = node.id
    elif isinstance(node, ast.Attribute):
        name = node.attr
    else:
        return None
    name = name.lower()
    if name.endswith(MARKER_SUFFIX):
        name = name[: -len(MARKER_SUFFIX)]
    if name in STEP_MARKERS:
        return name.capitalize()
    return None


def _pattern_argument(call: ast.Call) -> str:
    if not call.args:
        return ""
    first = call.args[0]
    if isinstance(first, ast.Constant) and isinstance(first.value, str):
        return first.value
    return ""


def _method_parameters(func: ast.FunctionDef | ast.AsyncFunctionDef) -> tuple[StepParameter, ...]:
    """Parameters a step call must supply; defaulted ones are left out."""
    args = func.args
    positional = [*args.posonlyargs, *args.args]
    positional = positional[: len(positional) - len(args.defaults)]
    if positional and not _is_staticmethod(func):
        positional = positional[1:]  # self / cls
    required_kwonly = [
        arg for arg, default in zip(args.kwonlyargs, args.kw_defaults) if default is None
    ]
    return tuple(
        StepParameter(
            type_name=ast.unparse(arg.annotation) if arg.annotation else "",
            name=arg.arg,
        )
        for arg in [*positional, *required_kwonly]
    )


def _is_staticmethod(func: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    return any(
        isinstance(d, ast.Name) and d.id == "staticmethod" for d in func.decorator_list
    )


# ── Declarative registration ─────────────────────────────────────────


def catalog_from_classes(classes: Iterable[type]) -> tuple[StepDefinition, ...]:
    """Build a catalog from already imported step classes.

    Reads the metadata left by :func:`feature_gen.runtime.given` and friends,
    for callers that prefer reflection over source analysis.
    """
    definitions: list[StepDefinition] = []
    for cls in classes:
        for name, member in cls.__dict__.items():
            func = member.__func__ if isinstance(member, (staticmethod, classmethod)) else member
            entries = getattr(func, STEP_ATTRIBUTE, ())
            if not entries:
                continue
            parameters = _signature_parameters(func, skip_first=not isinstance(member, staticmethod))
            for keyword, pattern in entries:
                definitions.append(StepDefinition(
                    keyword=keyword,
                    pattern=pattern,
                    owner=cls.__name__,
                    namespace=cls.__module__,
                    method=name,
                    parameters=parameters,
                ))
    return tuple(definitions)


def _signature_parameters(func: object, skip_first: bool) -> tuple[StepParameter, ...]:
    params = list(inspect.signature(func).parameters.values())  # type: ignore[arg-type]
    if skip_first and params:
        params = params[1:]
    result: list[StepParameter] = []
    for p in params:
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD) or p.default is not p.empty:
            continue
        if p.annotation is p.empty:
            type_name = ""
        elif isinstance(p.annotation, str):
            type_name = p.annotation
        else:
            type_name = getattr(p.annotation, "__name__", str(p.annotation))
        result.append(StepParameter(type_name=type_name, name=p.name))
    return tuple(result)
