"""Utility functions."""

from .merge import merge_values
from .multivalue import UNIT_SEPARATOR, encode_multivalue

__all__ = ["merge_values", "encode_multivalue", "UNIT_SEPARATOR"]
