"""Gherkin document -> Code-Ready Intermediate Form (CRIF).

Walks a parsed feature, matches every step against the step catalog and
produces the tree the template renders. Feature tags control the output:

    @namespace:tests.functional     output package of the generated module
    @baseclass:tests.support.Base   base class (module part goes to usings)
    @using:tests.helpers            extra import, repeatable

and ``@explicit`` on a scenario keeps it out of default runs.

Unmatched steps are not errors: they call a generated stub method on the test
class, and each distinct (keyword, text) pair gets exactly one stub per file.
"""

from __future__ import annotations

import json
import keyword as pykeyword
import logging
import re
from collections.abc import Iterable
from typing import Any

from feature_gen.matcher import StepPatternMatcher
from feature_gen.models import (
    SELF_OWNER,
    STEP_KEYWORDS,
    ArgumentCrif,
    BackgroundCrif,
    DataCellCrif,
    DataRowCrif,
    DataTableCrif,
    FeatureCrif,
    HeaderCellCrif,
    ParameterCrif,
    RemarksCrif,
    RuleCrif,
    ScenarioCrif,
    StepCrif,
    StepDefinition,
    UnimplementedStepCrif,
)
from feature_gen.parser import GherkinDocument

logger = logging.getLogger(__name__)

DEFAULT_RULE_NAME = "All scenarios"

NAMESPACE_TAG = "@namespace:"
BASECLASS_TAG = "@baseclass:"
USING_TAG = "@using:"
EXPLICIT_TAG = "@explicit"

# Parser keyword types, so localized keywords normalize too.
KEYWORD_TYPES = {"Context": "Given", "Action": "When", "Outcome": "Then"}

STUB_TABLE_PARAMETER = "table"

DOTTED_NAME = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")
OUTLINE_REFERENCE = re.compile(r"<([^<>]+)>")
NUMERIC_LITERALS = {
    "int": re.compile(r"^[+-]?\d+$"),
    "float": re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$"),
}


class ConversionError(Exception):
    """Raised when a feature cannot be converted (malformed tags or tables)."""


class GherkinToCrifConverter:
    """Converts parsed Gherkin documents into CRIF trees.

    Holds only the read-only matcher; every call to :meth:`convert` works on
    fresh state, so one converter can process any number of files.
    """

    def __init__(self, catalog: Iterable[StepDefinition] | StepPatternMatcher) -> None:
        if isinstance(catalog, StepPatternMatcher):
            self.matcher = catalog
        else:
            self.matcher = StepPatternMatcher(catalog)

    def convert(self, document: GherkinDocument, file_name: str = "") -> FeatureCrif:
        return _FeatureConversion(self.matcher, file_name).run(document)


class _FeatureConversion:
    """State for converting one feature file."""

    def __init__(self, matcher: StepPatternMatcher, file_name: str) -> None:
        self.matcher = matcher
        self.crif = FeatureCrif(file_name=file_name)
        self._stubs: dict[tuple[str, str], UnimplementedStepCrif] = {}
        self._scenario_methods: set[str] = set()
        self._stub_methods: set[str] = set()

    def run(self, document: GherkinDocument) -> FeatureCrif:
        feature = document.get("feature")
        if not feature:
            return self.crif

        crif = self.crif
        crif.feature_name = feature.get("name", "")
        crif.feature_class = (
            method_name(crif.feature_name) or method_name(crif.file_name) or "Feature"
        )
        crif.description_lines = description_lines(feature)

        for tag in feature.get("tags", []):
            self._apply_feature_tag(tag["name"])

        children = feature.get("children", [])
        for child in children:
            if "background" in child:
                steps = self._convert_steps(child["background"].get("steps", []), {})
                crif.background = BackgroundCrif(steps=steps)

        default_rule: RuleCrif | None = None
        for child in children:
            if "rule" in child:
                crif.rules.append(self._convert_rule(child["rule"]))
            elif "scenario" in child:
                if default_rule is None:
                    default_rule = RuleCrif(name=DEFAULT_RULE_NAME)
                    crif.rules.append(default_rule)
                default_rule.scenarios.append(self._convert_scenario(child["scenario"]))

        return crif

    # ── Tags ─────────────────────────────────────────────────────────

    def _apply_feature_tag(self, tag: str) -> None:
        crif = self.crif
        if tag.startswith(NAMESPACE_TAG):
            crif.namespace = _dotted_tag_value(tag, NAMESPACE_TAG)
        elif tag.startswith(BASECLASS_TAG):
            module, _, class_name = _dotted_tag_value(tag, BASECLASS_TAG).rpartition(".")
            crif.base_class = class_name
            if module:
                _append_unique(crif.usings, module)
        elif tag.startswith(USING_TAG):
            _append_unique(crif.usings, _dotted_tag_value(tag, USING_TAG))

    # ── Rules and scenarios ──────────────────────────────────────────

    def _convert_rule(self, rule: dict[str, Any]) -> RuleCrif:
        rule_crif = RuleCrif(
            name=rule.get("name", ""),
            description="\n".join(description_lines(rule)),
        )
        for child in rule.get("children", []):
            if "background" in child:
                raise ConversionError(
                    f"Rule '{rule_crif.name}' has a Background; "
                    "only a feature-level Background is supported"
                )
            if "scenario" in child:
                rule_crif.scenarios.append(self._convert_scenario(child["scenario"]))
        return rule_crif

    def _convert_scenario(self, scenario: dict[str, Any]) -> ScenarioCrif:
        name = scenario.get("name", "")
        scenario_crif = ScenarioCrif(
            name=name,
            method=_unique(method_name(name) or "Scenario", self._scenario_methods),
        )

        lines = description_lines(scenario)
        if lines:
            scenario_crif.remarks = RemarksCrif(lines=lines)

        scenario_crif.explicit_tag = any(
            tag["name"] == EXPLICIT_TAG for tag in scenario.get("tags", [])
        )

        outline = self._convert_examples(scenario, scenario_crif)
        scenario_crif.steps = self._convert_steps(scenario.get("steps", []), outline)
        return scenario_crif

    def _convert_examples(
        self, scenario: dict[str, Any], scenario_crif: ScenarioCrif
    ) -> dict[str, str]:
        """Fill outline parameters and test cases.

        Returns a mapping of Examples column name -> Python identifier.
        """
        outline: dict[str, str] = {}
        headers: list[str] | None = None
        for examples in scenario.get("examples", []):
            header_row = examples.get("tableHeader")
            if header_row is None:
                continue
            names = [cell["value"] for cell in header_row["cells"]]
            if headers is None:
                headers = names
                taken: set[str] = set()
                for header in names:
                    outline[header] = _unique(python_identifier(header), taken)
                    scenario_crif.parameters.append(
                        ParameterCrif(type="str", name=outline[header])
                    )
                _mark_last(scenario_crif.parameters)
            elif names != headers:
                raise ConversionError(
                    f"Examples of scenario '{scenario_crif.name}' have different "
                    f"columns: {headers} vs {names}"
                )
            for row in examples.get("tableBody", []):
                values = [quote(cell["value"]) for cell in row["cells"]]
                scenario_crif.test_cases.append(", ".join(values))
        return outline

    # ── Steps ────────────────────────────────────────────────────────

    def _convert_steps(
        self, steps: list[dict[str, Any]], outline: dict[str, str]
    ) -> list[StepCrif]:
        converted: list[StepCrif] = []
        current = "Given"
        table_count = 0
        for step in steps:
            current = normalize_keyword(step, current)
            step_crif = StepCrif(keyword=step["keyword"].strip(), text=step["text"])
            if "dataTable" in step:
                table_count += 1
                step_crif.data_table = convert_data_table(
                    step["dataTable"], f"table{table_count}"
                )
            self._resolve(step_crif, current, outline)
            converted.append(step_crif)
        return converted

    def _resolve(self, step: StepCrif, keyword: str, outline: dict[str, str]) -> None:
        match = self.matcher.resolve(keyword, step.text)
        if match is None:
            self._attach_stub(step, keyword, outline)
            return

        definition = match.definition
        step.owner = definition.owner
        step.method = definition.method
        _append_unique(self.crif.classes, definition.owner)
        if definition.namespace:
            _append_unique(self.crif.usings, definition.namespace)

        parameters = definition.parameters
        for value, parameter in zip(match.arguments, parameters):
            step.arguments.append(ArgumentCrif(
                value=value,
                expression=argument_expression(value, parameter.type_name, outline),
            ))
        if step.data_table and len(parameters) == len(match.arguments) + 1:
            variable = step.data_table.variable_name
            step.arguments.append(ArgumentCrif(value=variable, expression=variable))

        supplied = len(match.arguments) + (1 if step.data_table else 0)
        if supplied != len(parameters):
            raise ConversionError(
                f"Step '{step.keyword} {step.text}' matched "
                f"{definition.owner}.{definition.method}, which takes "
                f"{len(parameters)} parameter(s), but the step supplies {supplied}"
            )
        _mark_last(step.arguments)

    def _attach_stub(self, step: StepCrif, keyword: str, outline: dict[str, str]) -> None:
        key = (keyword, step.text)
        stub = self._stubs.get(key)
        if stub is None:
            stub = UnimplementedStepCrif(
                keyword=keyword,
                text=step.text,
                method=_unique(stub_method_name(step.text), self._stub_methods),
                parameters=stub_parameters(step.text, has_table=step.data_table is not None),
            )
            self._stubs[key] = stub
            self.crif.unimplemented.append(stub)
        elif stub_takes_table(stub) != (step.data_table is not None):
            logger.debug(
                "Stub %s was generated %s a table; '%s %s' %s one here",
                stub.method,
                "with" if stub_takes_table(stub) else "without",
                step.keyword,
                step.text,
                "has" if step.data_table else "lacks",
            )

        step.owner = SELF_OWNER
        step.method = stub.method
        references = _outline_references(step.text)
        for parameter in stub.parameters:
            if parameter.type == "DataTable":
                variable = step.data_table.variable_name if step.data_table else "None"
                step.arguments.append(ArgumentCrif(value=variable, expression=variable))
                continue
            reference = references.get(parameter.name, "")
            step.arguments.append(ArgumentCrif(
                value=f"<{reference}>",
                expression=argument_expression(f"<{reference}>", "str", outline),
            ))
        _mark_last(step.arguments)


# ── Helpers ──────────────────────────────────────────────────────────


def normalize_keyword(step: dict[str, Any], current: str) -> str:
    """Return the Given/When/Then a step matches under.

    And, But and ``*`` inherit the most recent primary keyword.
    """
    keyword_type = step.get("keywordType")
    if keyword_type in KEYWORD_TYPES:
        return KEYWORD_TYPES[keyword_type]
    keyword = step["keyword"].strip().capitalize()
    if keyword in STEP_KEYWORDS:
        return keyword
    return current


def convert_data_table(table: dict[str, Any], variable_name: str) -> DataTableCrif:
    """Convert a step data table: first row headers, remaining rows data."""
    table_crif = DataTableCrif(variable_name=variable_name)
    rows = [[cell["value"] for cell in row["cells"]] for row in table.get("rows", [])]
    if not rows:
        return table_crif

    header = rows[0]
    table_crif.headers = [HeaderCellCrif(value=v) for v in header]
    _mark_last(table_crif.headers)
    for index, row in enumerate(rows[1:], 1):
        if len(row) != len(header):
            raise ConversionError(
                f"Data table row {index} has {len(row)} cell(s) "
                f"but the header has {len(header)}"
            )
        row_crif = DataRowCrif(cells=[DataCellCrif(value=v) for v in row])
        _mark_last(row_crif.cells)
        table_crif.rows.append(row_crif)
    _mark_last(table_crif.rows)
    return table_crif


def description_lines(node: dict[str, Any]) -> list[str]:
    description = node.get("description") or ""
    return [line.strip() for line in description.splitlines() if line.strip()]


def method_name(text: str) -> str:
    """PascalCase *text*, keeping only characters valid in an identifier.

    "Create new transaction" -> "CreateNewTransaction"
    """
    words = re.split(r"[\s\-_]+", text)
    result = []
    for word in words:
        cleaned = _identifier_chars(word)
        if cleaned:
            result.append(_identifier_chars(cleaned[0].upper()) + cleaned[1:])
    return "".join(result)


def stub_method_name(text: str) -> str:
    name = method_name(text) or "Step"
    if not name.isidentifier():
        name = "_" + name
    if pykeyword.iskeyword(name):
        name += "_"
    return name


def stub_parameters(text: str, has_table: bool = False) -> list[ParameterCrif]:
    """Infer stub parameters: one ``str`` per ``<placeholder>`` in the text."""
    parameters = [
        ParameterCrif(type="str", name=identifier)
        for identifier in _outline_references(text)
    ]
    if has_table:
        taken = {p.name for p in parameters}
        parameters.append(
            ParameterCrif(type="DataTable", name=_unique(STUB_TABLE_PARAMETER, taken))
        )
    _mark_last(parameters)
    return parameters


def stub_takes_table(stub: UnimplementedStepCrif) -> bool:
    return any(p.type == "DataTable" for p in stub.parameters)


def python_identifier(name: str) -> str:
    """Turn an Examples column name into a usable parameter name."""
    identifier = "".join(ch if _is_identifier_char(ch) else " " for ch in name)
    identifier = re.sub(r"\s+", "_", identifier.strip()).strip("_")
    if not identifier:
        identifier = "value"
    if not identifier.isidentifier():
        identifier = "_" + identifier
    if pykeyword.iskeyword(identifier) or identifier == "self":
        identifier += "_"
    return identifier


def argument_expression(value: str, type_name: str, outline: dict[str, str]) -> str:
    """Python source for a captured argument value."""
    reference = OUTLINE_REFERENCE.fullmatch(value)
    if reference and reference.group(1) in outline:
        identifier = outline[reference.group(1)]
        if type_name in NUMERIC_LITERALS:
            return f"{type_name}({identifier})"
        return identifier
    literal = NUMERIC_LITERALS.get(type_name)
    if literal is not None and literal.match(value):
        return value
    return quote(value)


def quote(value: str) -> str:
    """Double-quoted Python string literal."""
    return json.dumps(value, ensure_ascii=False)


def _is_identifier_char(ch: str) -> bool:
    return ("_" + ch).isidentifier()


def _identifier_chars(text: str) -> str:
    return "".join(ch for ch in text if _is_identifier_char(ch))


def _outline_references(text: str) -> dict[str, str]:
    """Map identifier -> raw name for each ``<name>`` in *text*, in order."""
    references: dict[str, str] = {}
    for raw in OUTLINE_REFERENCE.findall(text):
        identifier = python_identifier(raw)
        if identifier not in references:
            references[identifier] = raw
    return references


def _dotted_tag_value(tag: str, prefix: str) -> str:
    value = tag[len(prefix):]
    if not DOTTED_NAME.match(value):
        raise ConversionError(f"Invalid value in tag '{tag}': expected a dotted name")
    return value


def _unique(name: str, taken: set[str]) -> str:
    candidate = name
    counter = 2
    while candidate in taken:
        candidate = f"{name}{counter}"
        counter += 1
    taken.add(candidate)
    return candidate


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)


def _mark_last(items: list[Any]) -> None:
    for i, item in enumerate(items):
        item.last = i == len(items) - 1
