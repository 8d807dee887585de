"""Core data models for feature-gen."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

STEP_KEYWORDS = ("Given", "When", "Then")

# Owner used for steps that resolve to a generated stub on the test class itself.
SELF_OWNER = "self"


# ── Step catalog ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class StepParameter:
    """A declared parameter of a step definition method."""

    type_name: str  # annotation text, "" when unannotated
    name: str


@dataclass(frozen=True)
class StepDefinition:
    """A step method bound to a Given/When/Then pattern."""

    keyword: str  # "Given", "When", "Then"
    pattern: str
    owner: str
    namespace: str
    method: str
    parameters: tuple[StepParameter, ...] = ()

    def __post_init__(self) -> None:
        if self.keyword not in STEP_KEYWORDS:
            raise ValueError(f"Invalid step keyword: {self.keyword}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "pattern": self.pattern,
            "owner": self.owner,
            "namespace": self.namespace,
            "method": self.method,
            "parameters": [
                {"type": p.type_name, "name": p.name} for p in self.parameters
            ],
        }


@dataclass(frozen=True)
class MatchResult:
    """A step definition matched against literal step text."""

    definition: StepDefinition
    arguments: tuple[str, ...] = ()


# ── Code-Ready Intermediate Form (CRIF) ──────────────────────────────
#
# The CRIF is the whole interface between conversion and rendering: templates
# see exactly the tree produced by the to_dict() methods below.


@dataclass
class ParameterCrif:
    type: str
    name: str
    last: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "name": self.name, "last": self.last}


@dataclass
class ArgumentCrif:
    """A positional argument of a step call.

    ``value`` is the text captured from the step, ``expression`` the Python
    source the template emits for it.
    """

    value: str
    expression: str
    last: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "expression": self.expression, "last": self.last}


@dataclass
class HeaderCellCrif:
    value: str
    last: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "last": self.last}


@dataclass
class DataCellCrif:
    value: str
    last: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "last": self.last}


@dataclass
class DataRowCrif:
    cells: list[DataCellCrif] = field(default_factory=list)
    last: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"cells": [c.to_dict() for c in self.cells], "last": self.last}


@dataclass
class DataTableCrif:
    """A step's data table; ``variable_name`` is unique within one method."""

    variable_name: str = ""
    headers: list[HeaderCellCrif] = field(default_factory=list)
    rows: list[DataRowCrif] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "variable_name": self.variable_name,
            "headers": [h.to_dict() for h in self.headers],
            "rows": [r.to_dict() for r in self.rows],
        }


@dataclass
class StepCrif:
    """One step line of a scenario or background.

    ``keyword`` is the keyword as written (And/But included); matching uses
    the normalized keyword instead.
    """

    keyword: str
    text: str
    owner: str = SELF_OWNER
    method: str = ""
    arguments: list[ArgumentCrif] = field(default_factory=list)
    data_table: DataTableCrif | None = None

    @property
    def is_stub(self) -> bool:
        return self.owner == SELF_OWNER

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "text": self.text,
            "owner": self.owner,
            "method": self.method,
            "arguments": [a.to_dict() for a in self.arguments],
            "data_table": self.data_table.to_dict() if self.data_table else None,
        }


@dataclass
class RemarksCrif:
    lines: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"lines": list(self.lines)}


@dataclass
class ScenarioCrif:
    name: str
    method: str
    remarks: RemarksCrif | None = None
    explicit_tag: bool = False
    test_cases: list[str] = field(default_factory=list)
    parameters: list[ParameterCrif] = field(default_factory=list)
    steps: list[StepCrif] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "method": self.method,
            "remarks": self.remarks.to_dict() if self.remarks else None,
            "explicit_tag": self.explicit_tag,
            "test_cases": list(self.test_cases),
            "parameters": [p.to_dict() for p in self.parameters],
            "steps": [s.to_dict() for s in self.steps],
        }


@dataclass
class RuleCrif:
    name: str
    description: str = ""
    scenarios: list[ScenarioCrif] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "scenarios": [s.to_dict() for s in self.scenarios],
        }


@dataclass
class BackgroundCrif:
    steps: list[StepCrif] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"steps": [s.to_dict() for s in self.steps]}


@dataclass
class UnimplementedStepCrif:
    """A stub to generate for a step with no matching definition."""

    keyword: str  # normalized: Given, When or Then
    text: str
    method: str
    parameters: list[ParameterCrif] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "text": self.text,
            "method": self.method,
            "parameters": [p.to_dict() for p in self.parameters],
        }


@dataclass
class FeatureCrif:
    """Root of the CRIF: everything needed to render one feature file."""

    usings: list[str] = field(default_factory=list)
    namespace: str = ""
    file_name: str = ""
    feature_name: str = ""
    feature_class: str = ""
    description_lines: list[str] = field(default_factory=list)
    base_class: str = ""
    classes: list[str] = field(default_factory=list)
    background: BackgroundCrif | None = None
    rules: list[RuleCrif] = field(default_factory=list)
    unimplemented: list[UnimplementedStepCrif] = field(default_factory=list)

    def all_steps(self) -> list[StepCrif]:
        steps: list[StepCrif] = list(self.background.steps) if self.background else []
        for rule in self.rules:
            for scenario in rule.scenarios:
                steps.extend(scenario.steps)
        return steps

    def to_dict(self) -> dict[str, Any]:
        return {
            "usings": list(self.usings),
            "namespace": self.namespace,
            "file_name": self.file_name,
            "feature_name": self.feature_name,
            "feature_class": self.feature_class,
            "description_lines": list(self.description_lines),
            "base_class": self.base_class,
            "classes": list(self.classes),
            "background": self.background.to_dict() if self.background else None,
            "rules": [r.to_dict() for r in self.rules],
            "unimplemented": [u.to_dict() for u in self.unimplemented],
        }


# ── Diagnostics and results ──────────────────────────────────────────


class Severity(Enum):
    """Severity levels for generation diagnostics."""

    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A problem reported by a generation run."""

    code: str  # "FG001".."FG005"
    severity: Severity
    message: str
    source_file: str | None = None

    def __str__(self) -> str:
        prefix = f"{self.source_file}: " if self.source_file else ""
        return f"{prefix}{self.severity.value} {self.code}: {self.message}"


@dataclass
class GeneratedFile:
    """One rendered test module."""

    feature_file: str
    output_path: str
    code: str
    crif: FeatureCrif


@dataclass
class GenerationReport:
    """Result of a generation run over all feature files."""

    files: list[GeneratedFile] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def is_success(self) -> bool:
        return len(self.errors) == 0


@dataclass
class ProjectConfig:
    """Project configuration for feature-gen."""

    version: str = "0.1.0"
    features_dir: str = "features"
    steps_dirs: list[str] = field(default_factory=lambda: ["tests/steps"])
    source_root: str = "."
    templates_dir: str = ".feature-gen/templates"
    template: str | None = None
    output_dir: str = "tests/generated"
    emit_crif: bool = False
