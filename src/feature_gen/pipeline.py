"""Generation pipeline: catalog, template, then one isolated pass per feature.

The step catalog is built once per run and shared read-only. Each feature
file is parsed, converted and rendered on its own; a failure in one file is
reported as a diagnostic against that file and the run moves on. The only
run-level failure is a missing template.
"""

from __future__ import annotations

import logging
from pathlib import Path

from feature_gen.catalog import build_catalog
from feature_gen.converter import GherkinToCrifConverter
from feature_gen.exporters.json_export import export_crif_json
from feature_gen.generator import TestGenerator, output_filename
from feature_gen.models import (
    Diagnostic,
    GeneratedFile,
    GenerationReport,
    ProjectConfig,
    Severity,
    StepDefinition,
    StepParameter,
)
from feature_gen.parser import FeatureParseError, parse_feature_string

logger = logging.getLogger(__name__)

MISSING_TEMPLATE = "FG001"
GENERATION_ERROR = "FG002"
PARSE_ERROR = "FG003"
UNIMPLEMENTED_STEPS = "FG004"
EXTRA_TEMPLATES = "FG005"

TEMPLATE_GLOB = "*.j2"
FEATURE_GLOB = "*.feature"

REFERENCE_FEATURE = """\
@namespace:reference.features
@baseclass:reference.support.ReferenceTestBase
Feature: Reference feature
  Validates that a template renders compilable tests.

  Background:
    Given a valid precondition

  Scenario Outline: Outline scenario
    Plain remarks.
    When the value is <input>
    Then the result is <output>

    Examples:
      | input | output |
      | one   | 1      |
      | two   | 2      |

  Rule: Reference rule
    A rule description.

    @explicit
    Scenario: Explicit scenario
      When an action occurs with "quoted text"
        | Field | Value |
        | Name  | Alpha |
      Then the expected result happens
"""

REFERENCE_STEPS = (
    StepDefinition(
        keyword="Given",
        pattern="a valid precondition",
        owner="ReferenceSteps",
        namespace="reference.steps",
        method="a_valid_precondition",
    ),
    StepDefinition(
        keyword="When",
        pattern="an action occurs with {value}",
        owner="ReferenceSteps",
        namespace="reference.steps",
        method="an_action_occurs_with",
        parameters=(
            StepParameter(type_name="str", name="value"),
            StepParameter(type_name="DataTable", name="table"),
        ),
    ),
    StepDefinition(
        keyword="When",
        pattern="the value is {value}",
        owner="ReferenceSteps",
        namespace="reference.steps",
        method="the_value_is",
        parameters=(StepParameter(type_name="str", name="value"),),
    ),
)


class MissingTemplateError(Exception):
    """Raised when no template is available for a generation run."""


def template_candidates(project_root: Path, config: ProjectConfig) -> list[Path]:
    """Return usable templates, preferred one first."""
    if config.template:
        explicit = project_root / config.template
        return [explicit] if explicit.is_file() else []
    templates_dir = project_root / config.templates_dir
    if not templates_dir.is_dir():
        return []
    return sorted(p for p in templates_dir.glob(TEMPLATE_GLOB) if p.is_file())


def find_template(project_root: Path, config: ProjectConfig) -> Path:
    """Return the template for this project. Raises MissingTemplateError."""
    candidates = template_candidates(project_root, config)
    if not candidates:
        raise _missing_template(config)
    return candidates[0]


def feature_files(project_root: Path, config: ProjectConfig) -> list[Path]:
    features_dir = project_root / config.features_dir
    if not features_dir.is_dir():
        return []
    return sorted(features_dir.rglob(FEATURE_GLOB))


def load_catalog(project_root: Path, config: ProjectConfig) -> tuple[StepDefinition, ...]:
    """Build the run's step catalog from the configured step directories."""
    paths = [project_root / d for d in config.steps_dirs]
    catalog = build_catalog(paths, project_root / config.source_root)
    logger.info("Discovered %d step definition(s)", len(catalog))
    return catalog


def generate_feature(
    content: str,
    file_name: str,
    template: str,
    converter: GherkinToCrifConverter,
    generator: TestGenerator | None = None,
    source_file: str | None = None,
) -> tuple[GeneratedFile | None, list[Diagnostic]]:
    """Parse, convert and render one feature.

    Never raises: failures come back as diagnostics with no generated file.
    """
    source = source_file or f"{file_name}.feature"
    generator = generator or TestGenerator()
    diagnostics: list[Diagnostic] = []

    try:
        document = parse_feature_string(content, source_file=source)
    except FeatureParseError as exc:
        diagnostics.append(Diagnostic(
            code=PARSE_ERROR,
            severity=Severity.ERROR,
            message=f"Error parsing {file_name}.feature: {exc.message}",
            source_file=source,
        ))
        return None, diagnostics

    try:
        crif = converter.convert(document, file_name)
        code = generator.render(template, crif)
    except Exception as exc:
        diagnostics.append(Diagnostic(
            code=GENERATION_ERROR,
            severity=Severity.ERROR,
            message=f"Error generating test for {file_name}: {type(exc).__name__}: {exc}",
            source_file=source,
        ))
        return None, diagnostics

    if crif.unimplemented:
        diagnostics.append(Diagnostic(
            code=UNIMPLEMENTED_STEPS,
            severity=Severity.WARNING,
            message=(
                f"Feature '{file_name}' has {len(crif.unimplemented)} unimplemented "
                "step(s). Stub implementations generated in output file."
            ),
            source_file=source,
        ))

    output_path = Path(*crif.namespace.split(".")) if crif.namespace else Path()
    output_path = output_path / output_filename(file_name)
    return GeneratedFile(
        feature_file=source,
        output_path=output_path.as_posix(),
        code=code,
        crif=crif,
    ), diagnostics


def run_generation(
    project_root: Path, config: ProjectConfig, write: bool = True
) -> GenerationReport:
    """Generate a test module for every feature file in the project.

    With ``write=False`` nothing is written to disk; the report still carries
    the generated code.
    """
    report = GenerationReport()

    try:
        template_path = find_template(project_root, config)
    except MissingTemplateError as exc:
        _add(report, Diagnostic(code=MISSING_TEMPLATE, severity=Severity.ERROR, message=str(exc)))
        return report
    candidates = template_candidates(project_root, config)
    if len(candidates) > 1:
        _add(report, Diagnostic(
            code=EXTRA_TEMPLATES,
            severity=Severity.WARNING,
            message=(
                f"{len(candidates)} templates found; using {template_path.name}, "
                f"ignoring {', '.join(p.name for p in candidates[1:])}"
            ),
        ))
    template = template_path.read_text(encoding="utf-8")

    converter = GherkinToCrifConverter(load_catalog(project_root, config))
    generator = TestGenerator()
    output_dir = project_root / config.output_dir
    claimed: dict[str, str] = {}

    for feature_path in feature_files(project_root, config):
        source = _display_path(feature_path, project_root)
        try:
            content = feature_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _add(report, Diagnostic(
                code=GENERATION_ERROR,
                severity=Severity.ERROR,
                message=f"Error reading {feature_path.name}: {exc}",
                source_file=source,
            ))
            continue

        generated, diagnostics = generate_feature(
            content, feature_path.stem, template, converter, generator, source_file=source
        )
        for diagnostic in diagnostics:
            _add(report, diagnostic)
        if generated is None:
            continue

        owner = claimed.setdefault(generated.output_path.casefold(), source)
        if owner != source:
            _add(report, Diagnostic(
                code=GENERATION_ERROR,
                severity=Severity.ERROR,
                message=(
                    f"Output {generated.output_path} for {source} is already generated "
                    f"from {owner}; give one of them a different @namespace tag"
                ),
                source_file=source,
            ))
            continue

        if write:
            try:
                _write_outputs(generated, output_dir, config.emit_crif)
            except OSError as exc:
                _add(report, Diagnostic(
                    code=GENERATION_ERROR,
                    severity=Severity.ERROR,
                    message=f"Error writing {generated.output_path}: {exc}",
                    source_file=source,
                ))
                continue
        logger.info("Generated %s from %s", generated.output_path, source)
        report.files.append(generated)

    return report


def validate_template(template: str) -> bool:
    """Render a reference feature with *template* and check it compiles."""
    converter = GherkinToCrifConverter(REFERENCE_STEPS)
    generated, diagnostics = generate_feature(REFERENCE_FEATURE, "reference", template, converter)
    if generated is None:
        for diagnostic in diagnostics:
            logger.warning("Template validation: %s", diagnostic.message)
        return False
    try:
        compile(generated.code, "<reference-test>", "exec")
    except SyntaxError as exc:
        logger.warning("Template validation: rendered code does not compile: %s", exc)
        return False
    return True


def _write_outputs(generated: GeneratedFile, output_dir: Path, emit_crif: bool) -> None:
    target = output_dir / generated.output_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(generated.code, encoding="utf-8")
    if emit_crif:
        snapshot = target.with_name(f"{generated.crif.file_name}.crif.json")
        snapshot.write_text(export_crif_json(generated.crif), encoding="utf-8")


def _missing_template(config: ProjectConfig) -> MissingTemplateError:
    where = config.template or f"{config.templates_dir}/{TEMPLATE_GLOB}"
    return MissingTemplateError(
        f"No template found at {where}. Run `feature-gen init` to install the default."
    )


def _add(report: GenerationReport, diagnostic: Diagnostic) -> None:
    level = logging.ERROR if diagnostic.severity is Severity.ERROR else logging.WARNING
    logger.log(level, "%s", diagnostic)
    report.diagnostics.append(diagnostic)


def _display_path(path: Path, project_root: Path) -> str:
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return str(path)
