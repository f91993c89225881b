"""
Errors raised by the generation and aggregation pipeline.
"""


class GDMStudyError(Exception):
    """Base class for pipeline errors."""


class InvalidArgument(GDMStudyError, ValueError):
    """Bad sample size, seed, group key or configuration value."""


class EmptyInput(GDMStudyError, ValueError):
    """Aggregation requested over zero records."""


class UndefinedStatistic(GDMStudyError, ArithmeticError):
    """Sample standard deviation requested for a group with a single member."""

    def __init__(self, group, column: str):
        self.group = group
        self.column = column
        super().__init__(
            f"Sample standard deviation of '{column}' is undefined for group {group!r} (n=1)"
        )
