import json
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

from ops_insight.config.business import (
    BusinessConfig,
    ProfitCenterGoal,
    ProfitTargets,
)
from ops_insight.errors import InvalidConfiguration

_TUPLE_FIELDS = ("sub_material_keywords", "sub_material_code_prefixes")


def load_business_config(
    config_path: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> BusinessConfig:
    """
    Loads the business configuration.
    If no path is provided, looks for business_config.json in the config directory.
    Caller overrides are applied on top of the file values.
    """
    if config_path is None:
        # Default to the file next to this script
        final_path = Path(__file__).parent / "business_config.json"
    else:
        final_path = Path(config_path)

    with open(final_path) as f:
        data = json.load(f)
        if not isinstance(data, dict):
            raise TypeError(f"Expected dict from {final_path}, got {type(data)}")

    if overrides:
        data.update(overrides)
    return config_from_dict(data)


def config_from_dict(data: Mapping[str, Any]) -> BusinessConfig:
    """Build a validated BusinessConfig from plain JSON-like data."""
    known = {f.name for f in fields(BusinessConfig)}
    unknown = set(data) - known
    if unknown:
        raise InvalidConfiguration(f"Unknown configuration keys: {sorted(unknown)}")

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key == "service_level_z":
            kwargs[key] = {_level_key(k): float(v) for k, v in value.items()}
        elif key == "profit_center_goals":
            kwargs[key] = tuple(_goal_from_dict(g) for g in value)
        elif key == "freshness_grade_bands":
            kwargs[key] = tuple((str(g), float(s)) for g, s in value)
        elif key in _TUPLE_FIELDS:
            kwargs[key] = tuple(value)
        else:
            kwargs[key] = value

    config = BusinessConfig(**kwargs)
    config.validate()
    return config


def _level_key(raw: Any) -> int | float:
    level = float(raw)
    return int(level) if level.is_integer() else level


def _goal_from_dict(raw: Mapping[str, Any]) -> ProfitCenterGoal:
    if isinstance(raw, ProfitCenterGoal):
        return raw
    try:
        targets = ProfitTargets(**raw["targets"])
        return ProfitCenterGoal(
            revenue_bracket=float(raw["revenue_bracket"]),
            targets=targets,
            label=str(raw.get("label", "")),
        )
    except (KeyError, TypeError) as e:
        raise InvalidConfiguration(f"Malformed profit center goal {raw!r}: {e}") from e
