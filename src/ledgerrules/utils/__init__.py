"""Utility functions for ledgerrules."""

from ledgerrules.utils.values import to_text, to_decimal, is_number, flatten_mapping, resolve_path

__all__ = ["to_text", "to_decimal", "is_number", "flatten_mapping", "resolve_path"]
