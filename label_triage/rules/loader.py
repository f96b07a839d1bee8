"""Load and validate the rule file."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import RuleSet

logger = logging.getLogger(__name__)

SECTIONS = {
    "labeler": "paths",
    "subscriptions": "mentions",
    "messages": "template",
}


def _expand_mapping(section: str, value: Any) -> Any:
    """Accept ``{label: value}`` shorthand for a section.

    ``labeler: {wasi: ["crates/wasi/**"]}`` is the layout of a stock labeler
    config, so existing files can be reused without rewriting them as lists.
    """
    if not isinstance(value, dict):
        return value
    field = SECTIONS[section]
    expanded = []
    for label, item in value.items():
        if field != "template" and isinstance(item, str):
            item = [item]
        expanded.append({"label": str(label), field: item})
    return expanded


def parse_rules(data: Any, source: str = "<rules>") -> RuleSet:
    """Validate already-parsed rule data.

    Raises:
        ConfigError: If the data does not describe a valid rule set
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: top level must be a mapping")

    unknown = set(data) - set(SECTIONS)
    if unknown:
        raise ConfigError(
            f"{source}: unknown section(s) {', '.join(sorted(unknown))}; "
            f"expected {', '.join(SECTIONS)}"
        )

    normalized = {
        section: _expand_mapping(section, value)
        for section, value in data.items()
        if value is not None
    }

    try:
        rules = RuleSet.model_validate(normalized)
    except ValidationError as e:
        raise ConfigError(f"{source}: invalid rule definition\n{e}") from e

    return rules


def load_rules(path: Path) -> RuleSet:
    """Read the rule file from disk.

    Raises:
        ConfigError: If the file is missing, is not YAML, or has invalid rules
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read rule file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: not valid YAML: {e}") from e

    rules = parse_rules(data, source=str(path))
    logger.info(
        "Loaded %d rule(s) from %s (%d labeler, %d subscription, %d message)",
        len(rules),
        path,
        len(rules.labeler),
        len(rules.subscriptions),
        len(rules.messages),
    )
    return rules
