"""JSON export for CRIF debug snapshots."""

from __future__ import annotations

import json
from typing import Any

from feature_gen.models import FeatureCrif


def export_crif_json(crif: FeatureCrif, indent: int = 2) -> str:
    """Export a CRIF tree as JSON, leaving out empty optional nodes."""
    return json.dumps(_drop_none(crif.to_dict()), indent=indent, ensure_ascii=False) + "\n"


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value
