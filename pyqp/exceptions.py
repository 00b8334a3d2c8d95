"""Custom exceptions."""


class ConfigurationError(Exception):
    """Raised when the assembled blocks do not describe a valid problem.

    Configuration errors are programming-contract violations: they are never retried,
    and an assembler that raised one should be discarded.

    """

    def __init__(self, message: str) -> None:
        self.message = message

    def __str__(self) -> str:
        """Pretty-print error."""
        return self.message


class DimensionMismatchError(ConfigurationError):
    """Raised when a block has the wrong shape."""

    def __init__(
        self,
        message: str,
        block: str,
        shape: tuple[int, ...],
        expected: tuple[int | None, ...],
    ) -> None:
        self.message = message
        self.block = block
        self.shape = shape
        self.expected = expected

    def __str__(self) -> str:
        """Pretty-print error."""
        expected = "x".join("?" if d is None else str(d) for d in self.expected)
        actual = "x".join(str(d) for d in self.shape)
        msg = f"{self.message} ({self.block} is {actual}, expected {expected})"
        return msg


class UndecidableVariableCountError(ConfigurationError):
    """Raised when none of AE, AI, Q or C is present."""


class ProvenanceError(ConfigurationError):
    """Raised when inequality provenance is inconsistent with AI."""


class SolverError(Exception):
    """Raised when an external solver fails to produce a solution."""

    def __init__(self, message: str, status: int) -> None:
        self.message = message
        self.status = status

    def __str__(self) -> str:
        """Pretty-print error."""
        return f"{self.message} (status = {self.status})"
