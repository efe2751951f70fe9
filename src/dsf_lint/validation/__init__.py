"""Result model for dsf-lint: severities, items and aggregated results."""

from .framework import ItemCollector, Severity, ValidationItem, ValidationResult

__all__ = [
    "ItemCollector",
    "Severity",
    "ValidationItem",
    "ValidationResult",
]
