"""Shift code normalization and display-label resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RawShiftDisplayConfig(BaseModel):
    """Admin-edited display document as stored in the config bucket."""

    aliases: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)


class ConditionalUnderline(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shift_code: str = Field(..., alias="shiftCode")
    weekdays: List[int] = Field(default_factory=list)


class ShiftStylingConfig(BaseModel):
    """Styling rules consumed by the front end; passed through untouched."""

    model_config = ConfigDict(populate_by_name=True)

    conditional_underline: Optional[ConditionalUnderline] = Field(default=None, alias="conditionalUnderline")


def _first_token(value: str) -> str:
    parts = value.split()
    return parts[0] if parts else ""


@dataclass
class ShiftDisplayConfig:
    alias_map: Dict[str, str] = field(default_factory=dict)
    label_map: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: RawShiftDisplayConfig) -> "ShiftDisplayConfig":
        alias_map: Dict[str, str] = {}
        for key, value in raw.aliases.items():
            cleaned_key = key.strip().lower()
            cleaned_value = value.strip()
            if not cleaned_key or not cleaned_value:
                continue
            alias_map[cleaned_key] = cleaned_value

        label_map: Dict[str, str] = {}
        for key, value in raw.labels.items():
            cleaned_key = key.strip()
            cleaned_value = value.strip()
            if not cleaned_key or not cleaned_value:
                continue
            label_map[cleaned_key] = cleaned_value
            label_map[cleaned_key.upper()] = cleaned_value
            label_map[cleaned_key.lower()] = cleaned_value

        return cls(alias_map=alias_map, label_map=label_map)

    def normalize_token(self, value: str) -> str:
        """Map free text to its canonical code; unknown text is returned trimmed."""
        trimmed = value.strip()
        if not trimmed:
            return ""

        mapped = self.alias_map.get(trimmed.lower())
        if mapped is not None:
            return mapped

        first = _first_token(trimmed)
        if first:
            mapped = self.alias_map.get(first.lower())
            if mapped is not None:
                return mapped

        return trimmed

    def extract_shift_code(self, alias: str) -> str:
        """Reduce an upstream alias such as ``"RATM 8:00AM - 2:00PM"`` to its code."""
        token = _first_token(alias) or alias.strip()
        normalized = self.normalize_token(token)
        if not normalized:
            return token
        return normalized

    def label_override(self, key: str) -> Optional[str]:
        trimmed = key.strip()
        if not trimmed:
            return None
        for candidate in (trimmed, trimmed.upper(), trimmed.lower()):
            label = self.label_map.get(candidate)
            if label is not None:
                return label
        return None

    def resolve_label(self, code: str, raw_label: str) -> str:
        """Pick the display label for ``code``.

        Overrides are tried by canonical code, then by the normalized alias,
        then by the verbatim alias, before falling back to the normalized
        alias and finally the code itself.
        """
        override = self.label_override(code)
        if override is not None:
            return override

        normalized = self.normalize_token(raw_label)
        override = self.label_override(normalized)
        if override is not None:
            return override

        override = self.label_override(raw_label)
        if override is not None:
            return override

        if not normalized:
            return code
        return normalized


__all__ = [
    "ConditionalUnderline",
    "RawShiftDisplayConfig",
    "ShiftDisplayConfig",
    "ShiftStylingConfig",
]
