"""Helper modules for the PrintQueue application."""

__all__ = [
    "print_settings",
]
