"""
Error types for the fire-direction engine.

Every failure the engine can report on bad input has its own type so that
callers can decide whether to retry with different inputs or surface the
message to an operator. All errors derive from FireDirectionError and from
the closest built-in exception family (ValueError or LookupError).
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class FireDirectionError(Exception):
    """Base class for all engine errors."""


class FormatError(FireDirectionError, ValueError):
    """
    Malformed grid string.

    Coordinates computed outside the grid square raise the GridSquareError
    subclass.
    """


class GridSquareError(FormatError):
    """A projected coordinate leaves the origin's 100 km grid square."""


class UnknownReferenceError(FireDirectionError, LookupError):
    """Unrecognized weapon system or ammunition id."""

    def __init__(self, kind: str, reference_id: object):
        self.kind = kind
        self.reference_id = reference_id
        super().__init__(f"Unknown {kind} id: {reference_id!r}")


class UnknownMethodError(FireDirectionError, ValueError):
    """
    Unrecognized tag for a tactical method, formation, distribution or priority.

    Attributes:
        kind: What the tag names, e.g. ``"tactical method"``.
        tag: The rejected tag.
        choices: Tags that would have been accepted.
    """

    def __init__(self, kind: str, tag: object, choices: Sequence[str]):
        self.kind = kind
        self.tag = tag
        self.choices: List[str] = list(choices)
        super().__init__(f"Unknown {kind}: {tag!r} (expected one of: {', '.join(self.choices)})")


class OutOfRangeError(FireDirectionError, ValueError):
    """
    Target range is outside every viable charge group's bounds.

    Attributes:
        range_m: The requested range.
        min_range: Smallest range present in the table subset.
        max_range: Largest range present in the table subset.
    """

    def __init__(self, range_m: float, min_range: Optional[float], max_range: Optional[float]):
        self.range_m = range_m
        self.min_range = min_range
        self.max_range = max_range
        if min_range is None or max_range is None:
            message = f"Range {range_m:g}m cannot be served: no ballistic data available"
        else:
            message = (
                f"Range {range_m:g}m is outside available ballistic data "
                f"({min_range:g}m - {max_range:g}m) for all charges"
            )
        super().__init__(message)


class InvalidAdjustmentError(FireDirectionError, ValueError):
    """Observer range correction would drive the distance negative."""


class InvalidFormationError(FireDirectionError, ValueError):
    """
    Formation failed validation.

    Attributes:
        violations: Every rule the formation broke, in check order.
    """

    def __init__(self, violations: Sequence[str]):
        self.violations: List[str] = list(violations)
        super().__init__("Invalid formation: " + "; ".join(self.violations))


class InvalidAllocationError(FireDirectionError, ValueError):
    """Round allocation requested with an unusable emitter or round count."""


class ConfigError(FireDirectionError, ValueError):
    """Engine configuration value is missing or out of bounds."""
