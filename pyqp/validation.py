"""Shape validation for assembled problems."""

import dataclasses

import numpy as np
import numpy.typing as npt

from .exceptions import DimensionMismatchError, ProvenanceError
from .numerical_helpers import read_only, zeros_column
from .problem import Problem, count_variables


def validate_problem(problem: Problem) -> Problem:
    """Check that every block is consistent with every other block.

    Runs after each mutation of a ProblemAssembler.

    Parameters
    ----------
     problem : Problem
        Candidate problem.

    Returns
    -------
     problem : Problem
        Normalized problem: empty constraint blocks are dropped, and a missing BE, BI
        or C is replaced with zeros of the right length.

    Raises
    ------
     DimensionMismatchError
        If any two related blocks disagree on a dimension.
     ProvenanceError
        If the provenance doesn't have one entry per row of AI.
     UndecidableVariableCountError
        If there are constraints or an objective, but the number of variables can't be
        deduced.

    """
    AE, BE = problem.AE, problem.BE
    AI, BI = problem.AI, problem.BI
    Q, C = problem.Q, problem.C
    provenance = problem.inequality_provenance

    # A block with no rows means "no constraint".
    if AE is None or AE.shape[0] == 0:
        AE, BE = None, None
    if AI is None or AI.shape[0] == 0:
        AI, BI, provenance = None, None, None

    if AE is None and AI is None and Q is None and C is None:
        return Problem(kick_starter=problem.kick_starter)

    n = count_variables(AE, AI, Q, C)

    if AE is not None:
        AE, BE = _validate_constraints("AE", "BE", AE, BE, n)

    if Q is not None or C is not None:
        if Q is not None and Q.shape != (n, n):
            raise DimensionMismatchError(
                "Q has the wrong number of rows and/or columns!", "Q", Q.shape, (n, n)
            )
        if C is None:
            C = read_only(zeros_column(n))
        elif C.shape != (n, 1):
            raise DimensionMismatchError(
                "C has the wrong number of rows and/or columns!", "C", C.shape, (n, 1)
            )

    if AI is not None:
        AI, BI = _validate_constraints("AI", "BI", AI, BI, n)
        if provenance is not None and len(provenance) != AI.shape[0]:
            raise ProvenanceError(
                f"Provenance has {len(provenance)} entries but AI has "
                f"{AI.shape[0]} rows!"
            )

    kick_starter = problem.kick_starter
    if kick_starter is not None and kick_starter.shape != (n,):
        raise DimensionMismatchError(
            "Kick starter has the wrong length!",
            "kick_starter",
            kick_starter.shape,
            (n,),
        )

    return dataclasses.replace(
        problem,
        AE=AE,
        BE=BE,
        AI=AI,
        BI=BI,
        Q=Q,
        C=C,
        inequality_provenance=provenance,
    )


def _validate_constraints(
    body_name: str,
    rhs_name: str,
    body: npt.NDArray[np.float64],
    rhs: npt.NDArray[np.float64] | None,
    n: int,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Validate a (body, right-hand side) pair; synthesize a zero RHS if absent."""
    if body.shape[1] != n:
        raise DimensionMismatchError(
            f"{body_name} has the wrong number of columns!",
            body_name,
            body.shape,
            (None, n),
        )

    if rhs is None:
        rhs = read_only(zeros_column(body.shape[0]))
    elif body.shape[0] != rhs.shape[0]:
        raise DimensionMismatchError(
            f"{body_name} and {rhs_name} do not have the same number of rows!",
            rhs_name,
            rhs.shape,
            (body.shape[0], 1),
        )
    elif rhs.ndim != 2 or rhs.shape[1] != 1:
        raise DimensionMismatchError(
            f"{rhs_name} must have precisely one column!",
            rhs_name,
            rhs.shape,
            (body.shape[0], 1),
        )

    return body, rhs
