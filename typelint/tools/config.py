"""Rule configuration: loading, schema validation, normalization.

Config files are JSON in the familiar ESLint shape:

  {
    "rules": {
      "assignment-types-must-match": "error",
      "function-args-types-must-match": ["error", {"ignoreTrailingUndefineds": true}],
      "function-return-type-must-match": "off"
    }
  }

A rule's severity is "off", "warn" or "error" (or 0/1/2). Each rule module
publishes a JSON Schema for its options; the config schema is assembled from
those and validated with jsonschema. Validation errors carry JSON Pointers.
"""

from __future__ import annotations

import json
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import jsonschema

from typelint.rules import (
    assignment_types,
    function_args_length,
    function_args_types,
    function_return_type,
)
from typelint.tools.pointer import join_pointer, rule_at

RULE_MODULES: Tuple[ModuleType, ...] = (
    assignment_types,
    function_args_length,
    function_args_types,
    function_return_type,
)
RULES: Dict[str, ModuleType] = {m.NAME: m for m in RULE_MODULES}

SEVERITIES = {"off": "off", "warn": "warn", "error": "error", 0: "off", 1: "warn", 2: "error"}

DEFAULT_CONFIG: Dict[str, Any] = {"rules": {name: "error" for name in RULES}}

RuleSettings = Dict[str, Tuple[str, Dict[str, Any]]]


class ConfigError(ValueError):
    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def config_schema() -> Dict[str, Any]:
    severity = {"enum": ["off", "warn", "error", 0, 1, 2]}
    entries = {
        name: {
            "oneOf": [
                severity,
                {
                    "type": "array",
                    "prefixItems": [severity, mod.SCHEMA],
                    "items": False,
                    "minItems": 1,
                },
            ]
        }
        for name, mod in RULES.items()
    }
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "properties": {
            "rules": {"type": "object", "properties": entries, "additionalProperties": False},
        },
        "additionalProperties": False,
    }


def validate(config: Any, schema: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    validator = jsonschema.Draft202012Validator(schema or config_schema())
    errors: List[Dict[str, Any]] = []
    for err in sorted(validator.iter_errors(config), key=lambda e: [str(p) for p in e.absolute_path]):
        pointer = join_pointer(err.absolute_path)
        errors.append(
            {
                "pointer": pointer,
                "rule": rule_at(pointer),
                "message": err.message,
                "validator": err.validator,
            }
        )
    return errors


def load_config(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    try:
        config = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read config {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"config {p} is not valid JSON: {e}") from e
    check_config(config, source=str(p))
    return config


def check_config(config: Any, source: str = "config") -> None:
    errors = validate(config)
    if errors:
        first = errors[0]
        raise ConfigError(f"invalid {source} at {first['pointer'] or '/'}: {first['message']}", errors)


def normalize_rules(config: Optional[Mapping[str, Any]] = None) -> RuleSettings:
    """{rule name: (severity, options)} for every rule that is not switched off."""
    if config is None:
        config = DEFAULT_CONFIG
    check_config(config)
    out: RuleSettings = {}
    for name, entry in (config.get("rules") or {}).items():
        if isinstance(entry, list):
            severity = SEVERITIES[entry[0]]
            given = entry[1] if len(entry) > 1 else {}
        else:
            severity = SEVERITIES[entry]
            given = {}
        if severity == "off":
            continue
        options = dict(RULES[name].DEFAULTS)
        options.update(given)
        out[name] = (severity, options)
    return out
