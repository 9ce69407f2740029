"""
Print settings resolution.

Validates and normalizes raw settings payloads against the fixed option
table. Everything here is a pure function over a settings mapping.

Raw payloads may use snake_case keys (paper_type) or the camelCase keys sent
by browser forms (paperType). A field is "absent" when its key is missing or
its value is None or an empty string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type

from core.exceptions import SettingsValidationError
from models.print_settings import (
    ColorMode,
    PaperSize,
    PaperType,
    PrintQuality,
    PrintSettings,
)


# Canonical field name -> (enum, label used in error messages)
SETTING_FIELDS: Dict[str, tuple] = {
    "paper_type": (PaperType, "paper type"),
    "print_quality": (PrintQuality, "print quality"),
    "color_mode": (ColorMode, "color mode"),
    "paper_size": (PaperSize, "paper size"),
}

FIELD_ALIASES = {
    "paperType": "paper_type",
    "printQuality": "print_quality",
    "colorMode": "color_mode",
    "paperSize": "paper_size",
}

DEFAULT_SETTINGS = PrintSettings()


@dataclass
class ValidationResult:
    """Outcome of validate_settings()."""

    valid: bool
    errors: List[str] = field(default_factory=list)


def get_defaults() -> Dict[str, Any]:
    """Default settings as primitive values."""
    return DEFAULT_SETTINGS.to_dict()


def get_available_options() -> Dict[str, List[Any]]:
    """All supported values for each setting, in display order."""
    return {
        "paper_types": [member.value for member in PaperType],
        "print_qualities": [int(member) for member in PrintQuality],
        "color_modes": [member.value for member in ColorMode],
        "paper_sizes": [member.value for member in PaperSize],
    }


def _present_fields(settings: Mapping[str, Any]) -> Dict[str, Any]:
    """Collect declared fields that carry a value, keyed by canonical name."""
    present: Dict[str, Any] = {}
    for key, value in settings.items():
        name = FIELD_ALIASES.get(key, key)
        if name not in SETTING_FIELDS:
            continue
        if value is None or value == "":
            continue
        present[name] = value
    return present


def _as_settings_mapping(settings: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(settings, PrintSettings):
        return settings.to_dict()
    if isinstance(settings, Mapping):
        return settings
    return None


def _coerce_member(enum_cls: Type[Enum], value: Any) -> Enum:
    """
    Look up the enum member for a raw value.

    Raises:
        ValueError: If the value is not part of the option table
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, Enum):
        value = value.value
    if enum_cls is PrintQuality:
        if isinstance(value, bool):
            raise ValueError(value)
        if isinstance(value, str):
            value = value.strip()
        return PrintQuality(int(value))
    return enum_cls(value)


def validate_settings(settings: Any) -> ValidationResult:
    """
    Check every present field against its option table.

    Absent fields are not errors and unknown keys are ignored.

    Args:
        settings: Raw settings mapping (or a PrintSettings)

    Returns:
        ValidationResult with one error message per invalid field
    """
    mapping = _as_settings_mapping(settings)
    if mapping is None:
        return ValidationResult(valid=False, errors=["Settings object is required"])

    options = get_available_options()
    option_lists = {
        "paper_type": options["paper_types"],
        "print_quality": options["print_qualities"],
        "color_mode": options["color_modes"],
        "paper_size": options["paper_sizes"],
    }

    errors = []
    for name, value in _present_fields(mapping).items():
        enum_cls, label = SETTING_FIELDS[name]
        try:
            _coerce_member(enum_cls, value)
        except (ValueError, TypeError):
            allowed = ", ".join(str(option) for option in option_lists[name])
            errors.append(f"Invalid {label}: {value}. Must be one of: {allowed}")

    return ValidationResult(valid=not errors, errors=errors)


def _build(fields: Dict[str, Any]) -> PrintSettings:
    values = {}
    errors = []
    for name, raw in fields.items():
        enum_cls, label = SETTING_FIELDS[name]
        try:
            values[name] = _coerce_member(enum_cls, raw)
        except (ValueError, TypeError):
            errors.append(f"Invalid {label}: {raw}")
    if errors:
        raise SettingsValidationError(errors)
    return PrintSettings(**values)


def apply_defaults(partial_settings: Optional[Mapping[str, Any]]) -> PrintSettings:
    """
    Fill missing fields with defaults.

    Present fields pass through unchanged; print quality is coerced to its
    integer DPI value.

    Args:
        partial_settings: Settings mapping, possibly missing fields (or None)

    Returns:
        Complete PrintSettings

    Raises:
        SettingsValidationError: If a present field is not a supported value
    """
    mapping = _as_settings_mapping(partial_settings) or {}
    return _build(_present_fields(mapping))


def normalize_settings(settings: Any) -> PrintSettings:
    """
    Validate and coerce every field to its canonical type.

    Unlike apply_defaults(), string fields are passed through str() first, so
    a quality arriving as "1200" and one arriving as 1200 are stored the same
    way. normalize_settings(normalize_settings(s)) == normalize_settings(s).

    Args:
        settings: Raw settings mapping, a PrintSettings, or None for defaults

    Returns:
        Complete, canonical PrintSettings

    Raises:
        SettingsValidationError: If any present field fails validation
    """
    if settings is None:
        return DEFAULT_SETTINGS

    validation = validate_settings(settings)
    if not validation.valid:
        raise SettingsValidationError(validation.errors)

    fields = {}
    for name, value in _present_fields(_as_settings_mapping(settings)).items():
        if isinstance(value, Enum):
            value = value.value
        if name == "print_quality":
            fields[name] = int(_coerce_member(PrintQuality, value))
        else:
            fields[name] = str(value)
    return _build(fields)
