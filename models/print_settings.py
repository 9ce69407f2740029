"""
Print settings data models.

The option table is fixed: every PrintSettings instance holds enum members,
so an unsupported value can never reach the database or the printer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict


class PaperType(Enum):
    """Media loaded in the printer tray."""

    PLAIN_PAPER = "Plain Paper"
    GLOSSY = "Glossy"


class PrintQuality(IntEnum):
    """Print resolution in DPI."""

    DPI_600 = 600
    DPI_1200 = 1200


class ColorMode(Enum):
    """Color or monochrome output."""

    COLOR = "Color"
    GRAYSCALE = "Grayscale"


class PaperSize(Enum):
    """Supported sheet sizes."""

    A4 = "A4"
    LETTER = "Letter"
    LEGAL = "Legal"


@dataclass(frozen=True)
class PrintSettings:
    """
    Normalized print configuration for one job.

    Frozen so a job's settings snapshot cannot change between persistence
    and submission.
    """

    paper_type: PaperType = PaperType.PLAIN_PAPER
    """Paper type (Plain Paper, Glossy)."""

    print_quality: PrintQuality = PrintQuality.DPI_600
    """Resolution in DPI (600, 1200)."""

    color_mode: ColorMode = ColorMode.GRAYSCALE
    """Color mode (Color, Grayscale)."""

    paper_size: PaperSize = PaperSize.A4
    """Paper size (A4, Letter, Legal)."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to canonical primitive values (strings, integer DPI)."""
        return {
            "paper_type": self.paper_type.value,
            "print_quality": int(self.print_quality),
            "color_mode": self.color_mode.value,
            "paper_size": self.paper_size.value,
        }
