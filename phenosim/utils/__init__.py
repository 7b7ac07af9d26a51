"""
PhenoSim Utilities Package.
Internal utilities - not part of public API.
"""

from . import formatters, input_utils, validators

__all__ = [
    "formatters",
    "input_utils",
    "validators",
]
