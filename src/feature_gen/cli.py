"""Click CLI entry point for feature-gen."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from feature_gen import __version__
from feature_gen.config import (
    ConfigError,
    install_default_template,
    is_initialized,
    load_config,
    save_config,
)
from feature_gen.models import ProjectConfig


def _configure_logging(verbose: bool, debug: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", force=True)


def _load_project(ctx: click.Context) -> tuple[Path, ProjectConfig] | None:
    project_root = Path.cwd()
    if not is_initialized(project_root):
        click.echo("Error: Not initialized. Run `feature-gen init` first.")
        ctx.exit(1)
        return None
    try:
        return project_root, load_config(project_root)
    except ConfigError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
        return None


@click.group()
@click.version_option(version=__version__, prog_name="feature-gen")
@click.option("--verbose", is_flag=True, default=False, help="Log progress")
@click.option("--debug", is_flag=True, default=False, help="Log matcher details")
def cli(verbose: bool, debug: bool) -> None:
    """Feature Gen: pytest modules from Gherkin feature files."""
    _configure_logging(verbose, debug)


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Initialize a project for test generation."""
    project_root = Path.cwd()
    already = is_initialized(project_root)

    if already:
        click.echo("Warning: Project is already initialized. Keeping configuration.")
        try:
            config = load_config(project_root)
        except ConfigError as e:
            click.echo(f"Error: {e}")
            ctx.exit(1)
            return
    else:
        config = ProjectConfig()

    config_path = save_config(config, project_root)
    features_dir = project_root / config.features_dir
    features_dir.mkdir(parents=True, exist_ok=True)
    for steps_dir in config.steps_dirs:
        (project_root / steps_dir).mkdir(parents=True, exist_ok=True)
    template = install_default_template(config, project_root)

    if already:
        click.echo("Existing templates and feature files preserved.")
    else:
        click.echo("Initialized feature-gen project.")
        click.echo(f"  Created: {features_dir}/")
        click.echo(f"  Config:  {config_path}")
    if template is not None:
        click.echo(f"  Template: {template}")


@cli.command()
@click.option("--dry-run", is_flag=True, default=False, help="Report without writing files")
@click.pass_context
def generate(ctx: click.Context, dry_run: bool) -> None:
    """Generate test modules for every feature file."""
    from feature_gen.pipeline import run_generation

    loaded = _load_project(ctx)
    if loaded is None:
        return
    project_root, config = loaded

    # Diagnostics reach the terminal through logging.
    report = run_generation(project_root, config, write=not dry_run)

    output_dir = project_root / config.output_dir
    for generated in report.files:
        action = "Would generate" if dry_run else "Generated"
        click.echo(f"{action}: {output_dir / generated.output_path}")

    click.echo(
        f"\n{len(report.files)} file(s), {len(report.errors)} error(s), "
        f"{len(report.warnings)} warning(s)"
    )
    if not report.is_success:
        ctx.exit(1)


@cli.command()
@click.option("--format", "fmt", type=click.Choice(["json"]), default=None)
@click.pass_context
def steps(ctx: click.Context, fmt: str | None) -> None:
    """List the step definitions found in the project."""
    from feature_gen.pipeline import load_catalog

    loaded = _load_project(ctx)
    if loaded is None:
        return
    project_root, config = loaded

    catalog = load_catalog(project_root, config)
    if fmt == "json":
        click.echo(json.dumps([d.to_dict() for d in catalog], indent=2))
        return

    if not catalog:
        click.echo("No step definitions found.")
        return

    click.echo(f"Found {len(catalog)} step definition(s):")
    for definition in catalog:
        click.echo(f"  {definition.keyword:<5} {definition.pattern}")
        click.echo(f"        -> {definition.namespace}.{definition.owner}.{definition.method}")


@cli.command()
@click.argument("keyword", type=click.Choice(["Given", "When", "Then"], case_sensitive=False))
@click.argument("text")
@click.pass_context
def match(ctx: click.Context, keyword: str, text: str) -> None:
    """Show which step definition a step line resolves to."""
    from feature_gen.matcher import StepPatternMatcher
    from feature_gen.pipeline import load_catalog

    loaded = _load_project(ctx)
    if loaded is None:
        return
    project_root, config = loaded

    matcher = StepPatternMatcher(load_catalog(project_root, config))
    result = matcher.resolve(keyword.capitalize(), text)
    if result is None:
        click.echo(f"No step definition matches: {keyword.capitalize()} {text}")
        ctx.exit(1)
        return

    definition = result.definition
    click.echo(f"Pattern: {definition.pattern}")
    click.echo(f"Method:  {definition.namespace}.{definition.owner}.{definition.method}")
    for parameter, value in zip(definition.parameters, result.arguments):
        click.echo(f"  {parameter.name} = {value}")


@cli.command()
@click.argument("feature", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def crif(ctx: click.Context, feature: str) -> None:
    """Print the CRIF of a feature file as JSON."""
    from feature_gen.converter import ConversionError, GherkinToCrifConverter
    from feature_gen.exporters.json_export import export_crif_json
    from feature_gen.parser import FeatureParseError, parse_feature_file
    from feature_gen.pipeline import load_catalog

    loaded = _load_project(ctx)
    if loaded is None:
        return
    project_root, config = loaded

    path = Path(feature)
    try:
        document = parse_feature_file(path)
        result = GherkinToCrifConverter(load_catalog(project_root, config)).convert(
            document, path.stem
        )
    except (FeatureParseError, ConversionError) as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
        return

    click.echo(export_crif_json(result), nl=False)


@cli.command()
@click.option("--template", "template_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Template to check instead of the project's")
@click.pass_context
def validate(ctx: click.Context, template_path: str | None) -> None:
    """Check that the template renders compilable tests."""
    from feature_gen.pipeline import MissingTemplateError, find_template, validate_template

    if template_path:
        path = Path(template_path)
    else:
        loaded = _load_project(ctx)
        if loaded is None:
            return
        project_root, config = loaded
        try:
            path = find_template(project_root, config)
        except MissingTemplateError as e:
            click.echo(f"Error: {e}")
            ctx.exit(1)
            return

    if validate_template(path.read_text(encoding="utf-8")):
        click.echo(f"Template OK: {path}")
    else:
        click.echo(f"Template invalid: {path}")
        ctx.exit(1)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current state of the project."""
    from feature_gen.pipeline import feature_files, load_catalog, template_candidates

    project_root = Path.cwd()
    if not is_initialized(project_root):
        click.echo("Project is not initialized. Run `feature-gen init`.")
        return
    try:
        config = load_config(project_root)
    except ConfigError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
        return

    features = feature_files(project_root, config)
    click.echo(f"Feature files: {len(features)}")
    click.echo(f"Step definitions: {len(load_catalog(project_root, config))}")

    templates = template_candidates(project_root, config)
    if templates:
        template = templates[0]
        if template.is_relative_to(project_root):
            template = template.relative_to(project_root)
        click.echo(f"Template: {template.as_posix()}")
    else:
        click.echo("Template: missing")

    output_dir = project_root / config.output_dir
    generated = sorted(output_dir.rglob("test_*.py")) if output_dir.exists() else []
    if generated:
        click.echo(f"Generated tests: {len(generated)}")
    else:
        click.echo("Generated tests: none")
