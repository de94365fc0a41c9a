"""Declarative parameter schema.

A processor's parameter contract is defined as a list of ParamDef objects.
ParamSchema wraps the list and derives the dicts callers work with
(default_params, PARAM_RANGES) plus validation of presets and CLI overrides.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    unit: str = ""
    range: tuple | None = None  # (min, max), inclusive


class ParamSchema:
    """Derives param dicts and validation from a declarative param list."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: p.default for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        """PARAM_RANGES: every param that declares a range."""
        return {p.key: p.range for p in self._params if p.range is not None}

    def param_sections(self) -> dict[str, list[str]]:
        """Section name -> list of param keys."""
        sections: dict[str, list[str]] = {}
        for p in self._params:
            sections.setdefault(p.section, []).append(p.key)
        return sections

    def validate_and_clamp(self, raw: dict) -> dict:
        """Validate and clamp a raw params dict (e.g. from a preset file).

        Unknown keys are dropped. Values are type-cast and clamped to range.
        Values that cannot be cast, and non-finite floats (JSON allows NaN),
        are dropped too, so the caller's defaults stay in effect for them.
        """
        result = {}
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue
            try:
                if p.type == ParamType.INT:
                    v = int(round(value))
                else:
                    v = float(value)
            except (TypeError, ValueError, OverflowError):
                continue
            if not math.isfinite(v):
                continue
            if p.range:
                lo, hi = p.range
                v = max(lo, min(hi, v))
            result[key] = v
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)
