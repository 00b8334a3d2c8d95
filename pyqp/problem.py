r"""Assembled optimization problem.

A problem has the form:
    minimize    (1/2) * x^T * Q * x + C^T * x
    subject to  AE * x  = BE
                AI * x <= BI,
where any of the blocks may be absent. When Q is absent the objective is linear,
C^T * x.

"""

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np
import numpy.typing as npt

from .exceptions import UndecidableVariableCountError


class ProblemSource(Protocol):
    """Anything exposing the problem blocks: a Problem or a ProblemAssembler."""

    AE: npt.NDArray[np.float64] | None
    BE: npt.NDArray[np.float64] | None
    AI: npt.NDArray[np.float64] | None
    BI: npt.NDArray[np.float64] | None
    Q: npt.NDArray[np.float64] | None
    C: npt.NDArray[np.float64] | None
    inequality_provenance: tuple[Any, ...] | None
    kick_starter: npt.NDArray[np.float64] | None


def count_variables(
    AE: npt.NDArray[np.float64] | None,
    AI: npt.NDArray[np.float64] | None,
    Q: npt.NDArray[np.float64] | None,
    C: npt.NDArray[np.float64] | None,
) -> int:
    """Deduce the number of variables.

    Uses, in order of preference, the columns of AE, the columns of AI, the rows of Q
    and the rows of C.

    Raises
    ------
     UndecidableVariableCountError
        If all four blocks are absent.

    """
    if AE is not None:
        return AE.shape[1]
    elif AI is not None:
        return AI.shape[1]
    elif Q is not None:
        return Q.shape[0]
    elif C is not None:
        return C.shape[0]
    raise UndecidableVariableCountError("Cannot deduce the number of variables!")


def rows_for_entity(provenance: Sequence[Any] | None, entity: Hashable) -> list[int]:
    """Rows of AI originating from `entity`, in order."""
    if provenance is None:
        return []
    return [ii for ii, e in enumerate(provenance) if e is not None and e == entity]


def format_block(name: str, A: npt.NDArray[np.float64] | None) -> str:
    """Format a single block for a structured dump, `?` when absent."""
    if A is None:
        return f"[{name}] = ?"
    body = np.array2string(np.asarray(A), precision=6, separator=", ")
    return f"[{name}] = {body}"


def format_problem(problem: ProblemSource) -> list[str]:
    """Dump lines for every block, the provenance and the kick starter."""
    lines = [
        format_block(name, getattr(problem, name))
        for name in ("AE", "BE", "Q", "C", "AI", "BI")
    ]
    provenance = problem.inequality_provenance
    shown = "?" if provenance is None else list(provenance)
    lines.append(f"[provenance] = {shown}")
    lines.append(format_block("kick_starter", problem.kick_starter))
    return lines


@dataclass(frozen=True, eq=False)
class Problem:
    """Immutable snapshot of an assembled problem.

    Parameters
    ----------
     AE, BE : npt.NDArray[np.float64], optional
        Equality constraints, AE * x = BE. AE is m_e-by-n, BE is m_e-by-1.
     AI, BI : npt.NDArray[np.float64], optional
        Inequality constraints, AI * x <= BI. AI is m_i-by-n, BI is m_i-by-1.
     Q : npt.NDArray[np.float64], optional
        Quadratic objective, n-by-n.
     C : npt.NDArray[np.float64], optional
        Linear objective, n-by-1.
     inequality_provenance : tuple, optional
        One opaque reference per row of AI identifying the constraint it came from.
        Rows appended without provenance hold None.
     kick_starter : npt.NDArray[np.float64], optional
        Initial guess for the solver, length n.

    Notes
    -----
    Arrays are flagged read-only. Solvers write results into a SolutionState, never
    into the problem.

    """

    AE: npt.NDArray[np.float64] | None = None
    BE: npt.NDArray[np.float64] | None = None
    AI: npt.NDArray[np.float64] | None = None
    BI: npt.NDArray[np.float64] | None = None
    Q: npt.NDArray[np.float64] | None = None
    C: npt.NDArray[np.float64] | None = None
    inequality_provenance: tuple[Any, ...] | None = None
    kick_starter: npt.NDArray[np.float64] | None = None

    @property
    def num_variables(self) -> int:
        """Count variables."""
        return count_variables(self.AE, self.AI, self.Q, self.C)

    @property
    def num_eq_constraints(self) -> int:
        """Count equality constraints."""
        return 0 if self.AE is None else self.AE.shape[0]

    @property
    def num_ineq_constraints(self) -> int:
        """Count inequality constraints."""
        return 0 if self.AI is None else self.AI.shape[0]

    def has_equalities(self) -> bool:
        return self.num_eq_constraints > 0

    def has_inequalities(self) -> bool:
        return self.num_ineq_constraints > 0

    def has_objective(self) -> bool:
        return self.Q is not None or self.C is not None

    def is_quadratic(self) -> bool:
        return self.Q is not None

    def inequality_rows_for(self, entity: Hashable) -> list[int]:
        """Rows of AI that originated from `entity`."""
        return rows_for_entity(self.inequality_provenance, entity)

    def __str__(self) -> str:
        """Structured dump of every block."""
        lines = [f"<{self.__class__.__name__}>"]
        lines.extend(format_problem(self))
        lines.append(f"</{self.__class__.__name__}>")
        return "\n".join(lines)
