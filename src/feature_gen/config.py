"""Configuration management for feature-gen projects."""

from __future__ import annotations

import json
from pathlib import Path

from feature_gen.generator import DEFAULT_TEMPLATE, default_template
from feature_gen.models import ProjectConfig

FEATURE_GEN_DIR = ".feature-gen"
CONFIG_FILE = "config.json"


class ConfigError(Exception):
    """Raised when the project config cannot be read."""


def _config_path(project_root: Path) -> Path:
    return project_root / FEATURE_GEN_DIR / CONFIG_FILE


def save_config(config: ProjectConfig, project_root: Path) -> Path:
    """Save project config to .feature-gen/config.json. Returns the config path."""
    feature_gen_dir = project_root / FEATURE_GEN_DIR
    feature_gen_dir.mkdir(parents=True, exist_ok=True)
    path = _config_path(project_root)
    data = {
        "version": config.version,
        "features_dir": config.features_dir,
        "steps_dirs": config.steps_dirs,
        "source_root": config.source_root,
        "templates_dir": config.templates_dir,
        "template": config.template,
        "output_dir": config.output_dir,
        "emit_crif": config.emit_crif,
    }
    path.write_text(json.dumps(data, indent=2) + "\n")
    return path


def load_config(project_root: Path) -> ProjectConfig:
    """Load project config from .feature-gen/config.json."""
    path = _config_path(project_root)
    if not path.exists():
        raise FileNotFoundError(f"No config found at {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config format in {path}: expected an object")

    defaults = ProjectConfig()
    steps_dirs = data.get("steps_dirs", defaults.steps_dirs)
    if isinstance(steps_dirs, str):
        steps_dirs = [steps_dirs]
    return ProjectConfig(
        version=data.get("version", defaults.version),
        features_dir=data.get("features_dir", defaults.features_dir),
        steps_dirs=list(steps_dirs),
        source_root=data.get("source_root", defaults.source_root),
        templates_dir=data.get("templates_dir", defaults.templates_dir),
        template=data.get("template"),
        output_dir=data.get("output_dir", defaults.output_dir),
        emit_crif=bool(data.get("emit_crif", defaults.emit_crif)),
    )


def is_initialized(project_root: Path) -> bool:
    """Check if the project is initialized for feature-gen."""
    return _config_path(project_root).exists()


def ensure_initialized(project_root: Path) -> ProjectConfig:
    """Ensure the project is initialized. Raises if not."""
    if not is_initialized(project_root):
        raise RuntimeError(
            "Project is not initialized. Run `feature-gen init` first."
        )
    return load_config(project_root)


def install_default_template(config: ProjectConfig, project_root: Path) -> Path | None:
    """Copy the bundled template into the templates dir.

    Returns the new path, or None if a template is already there.
    """
    templates_dir = project_root / config.templates_dir
    templates_dir.mkdir(parents=True, exist_ok=True)
    if any(templates_dir.glob("*.j2")):
        return None
    target = templates_dir / DEFAULT_TEMPLATE
    target.write_text(default_template(), encoding="utf-8")
    return target
