"""Rescale problems by powers of ten to reduce representation error.

Multiplying a row of AE * x = BE (or AI * x <= BI) by a positive constant doesn't change
the set of points satisfying it, and neither does multiplying the objective by a
positive constant change the optimal point. Choosing those constants so that the
coefficients in each row are centered around one reduces round-off error in the
solver.

Equality rows may also be multiplied by a negative constant; we use this to make every
equality right-hand side nonnegative. Inequality rows are never flipped, since that
would reverse the inequality.

"""

import dataclasses
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from .numerical_helpers import (
    adjustment_factor_exponent,
    magnitude_range,
    read_only,
)
from .problem import Problem
from .validation import validate_problem


@dataclass(frozen=True, eq=False)
class BalanceFactors:
    """Scale factors applied when balancing a problem.

    Parameters
    ----------
     equalities : vector
        Signed factor applied to each row of AE and BE. Empty if there are no
        equality constraints.
     inequalities : vector
        Positive factor applied to each row of AI and BI.
     objective : float
        Positive factor applied to both Q and C.

    """

    equalities: npt.NDArray[np.float64]
    inequalities: npt.NDArray[np.float64]
    objective: float = 1.0


def row_scale_factors(
    body: npt.NDArray[np.float64],
    rhs: npt.NDArray[np.float64],
    assert_positive_rhs: bool,
) -> npt.NDArray[np.float64]:
    """Calculate the factor to balance each row of a constraint block.

    Parameters
    ----------
     body : npt.NDArray[np.float64]
        Coefficient matrix, m-by-n.
     rhs : npt.NDArray[np.float64]
        Right-hand side, m-by-1.
     assert_positive_rhs : bool
        If True, negate the factor of every row with a negative right-hand side.

    Returns
    -------
     factors : vector
        One factor per row, each a signed power of ten.

    """
    m = body.shape[0]
    factors = np.ones(m)
    for ii in range(m):
        smallest, largest = magnitude_range(body[ii, :], rhs[ii, :])
        factors[ii] = 10.0 ** adjustment_factor_exponent(smallest, largest)
        if assert_positive_rhs and rhs[ii, 0] < 0:
            factors[ii] = -factors[ii]
    return factors


def balance_rows(
    body: npt.NDArray[np.float64],
    rhs: npt.NDArray[np.float64],
    assert_positive_rhs: bool,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Balance each row of a constraint block.

    Returns
    -------
     body, rhs : npt.NDArray[np.float64]
        New, scaled arrays. The inputs are not modified.
     factors : vector
        Factor applied to each row.

    """
    factors = row_scale_factors(body, rhs, assert_positive_rhs)
    return body * factors[:, np.newaxis], rhs * factors[:, np.newaxis], factors


def balance_matrices(
    *matrices: npt.NDArray[np.float64] | None,
) -> tuple[list[npt.NDArray[np.float64] | None], float]:
    """Scale several matrices by one shared power of ten.

    The objective is balanced this way: scaling rows of Q or C independently would
    change the relative weighting of the variables.

    Returns
    -------
     matrices : list
        Scaled copies, None wherever the input was None.
     factor : float
        The shared factor.

    """
    smallest, largest = magnitude_range(*matrices)
    factor = 10.0 ** adjustment_factor_exponent(smallest, largest)
    return [None if A is None else A * factor for A in matrices], factor


def balance_problem(
    problem: Problem,
    balance_objective: bool = True,
    verbose: bool = False,
) -> tuple[Problem, BalanceFactors]:
    """Balance every constraint row and the objective.

    Parameters
    ----------
     problem : Problem
        A validated problem.
     balance_objective : bool, optional
        If False, leave Q and C untouched. Defaults to True.
     verbose : bool, optional
        If True, print the factors chosen for each block.

    Returns
    -------
     problem : Problem
        The balanced problem; same dimensions as the input.
     factors : BalanceFactors
        The factors that were applied.

    """
    AE, BE = problem.AE, problem.BE
    AI, BI = problem.AI, problem.BI
    Q, C = problem.Q, problem.C

    eq_factors = np.ones(0)
    if problem.has_equalities():
        AE, BE, eq_factors = balance_rows(AE, BE, assert_positive_rhs=True)
        if verbose:
            print(f"  Balanced {len(eq_factors)} equality row(s): {eq_factors}")

    ineq_factors = np.ones(0)
    if problem.has_inequalities():
        AI, BI, ineq_factors = balance_rows(AI, BI, assert_positive_rhs=False)
        if verbose:
            print(f"  Balanced {len(ineq_factors)} inequality row(s): {ineq_factors}")

    obj_factor = 1.0
    if balance_objective and problem.has_objective():
        (Q, C), obj_factor = balance_matrices(Q, C)
        if verbose:
            print(f"  Balanced objective by {obj_factor:g}")

    balanced = dataclasses.replace(
        problem,
        AE=read_only(AE),
        BE=read_only(BE),
        AI=read_only(AI),
        BI=read_only(BI),
        Q=read_only(Q),
        C=read_only(C),
    )
    factors = BalanceFactors(
        equalities=read_only(eq_factors),
        inequalities=read_only(ineq_factors),
        objective=obj_factor,
    )
    return validate_problem(balanced), factors


def unscale_multipliers(
    LE: npt.NDArray[np.float64],
    LI: npt.NDArray[np.float64],
    factors: BalanceFactors,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    r"""Map Lagrange multipliers of a balanced problem back to the original problem.

    Parameters
    ----------
     LE, LI : vectors
        Multipliers reported by the solver for the balanced problem.
     factors : BalanceFactors
        Factors returned by `balance_problem`.

    Returns
    -------
     LE, LI : vectors
        Multipliers for the unbalanced problem.

    Notes
    -----
    The Lagrangian of the balanced problem is
       L'(x, nu', lambda') = g * f0(x) + \sum_j nu'_j * d_j * (a_j^T x - b_j)
                                       + \sum_i lambda'_i * e_i * (c_i^T x - h_i),
    where d and e are the row factors and g the objective factor. Dividing by g gives
    the Lagrangian of the original problem with nu_j = nu'_j * d_j / g and
    lambda_i = lambda'_i * e_i / g; the primal solution is the same.

    """
    if LE.shape != factors.equalities.shape:
        raise ValueError("LE must have one entry per equality constraint.")
    if LI.shape != factors.inequalities.shape:
        raise ValueError("LI must have one entry per inequality constraint.")

    return (
        LE * factors.equalities / factors.objective,
        LI * factors.inequalities / factors.objective,
    )
