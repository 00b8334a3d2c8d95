"""Interface to the external solving algorithm."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np
import numpy.typing as npt
from scipy.optimize import linprog

from .exceptions import ConfigurationError, SolverError
from .problem import Problem
from .solution import SolutionState


@dataclass
class SolverSettings:
    """Solver settings.

    Parameters
    ----------
    method : str, default="highs"
        Method passed to `scipy.optimize.linprog`.
    verbose : bool, default=False
        If True, print the status of each solve.

    """

    method: str = "highs"
    verbose: bool = False


@dataclass
class SolverResult:
    """Wrapper for the result of a solve.

    Parameters
    ----------
     solution : vector
        The optimal point, X.
     objective_value : float
        Objective at the optimal point.
     equality_multipliers, inequality_multipliers : vectors
        Lagrange multipliers, LE and LI.
     status : int
        Status reported by the solving algorithm, 0 on success.
     message : str
        Summary of result.

    """

    solution: npt.NDArray[np.float64]
    objective_value: float
    equality_multipliers: npt.NDArray[np.float64]
    inequality_multipliers: npt.NDArray[np.float64]
    status: int
    message: str


class Solver(ABC):
    """Base class for a solving algorithm consuming an assembled problem.

    Subclasses implement `solve_from`, reading the blocks from `self.problem` and
    reporting X, LE and LI through `self.state`.

    Parameters
    ----------
     problem : Problem
        Validated (and possibly balanced) problem.
     state : SolutionState, optional
        Where to write results. Defaults to a fresh state for `problem`.
     settings : SolverSettings, optional
        Solver settings.

    """

    def __init__(
        self,
        problem: Problem,
        state: Optional[SolutionState] = None,
        settings: Optional[SolverSettings] = None,
    ) -> None:
        """Initialize solver."""
        self.problem = problem
        if state is None:
            self.state: SolutionState = SolutionState(problem)
        else:
            self.state = state
        if settings is None:
            self.settings: SolverSettings = SolverSettings()
        else:
            self.settings = settings

    @property
    def num_variables(self) -> int:
        """Count variables."""
        return self.problem.num_variables

    @property
    def num_eq_constraints(self) -> int:
        """Count equality constraints."""
        return self.problem.num_eq_constraints

    @property
    def num_ineq_constraints(self) -> int:
        """Count inequality constraints."""
        return self.problem.num_ineq_constraints

    def solve(self, x0: Optional[npt.NDArray[np.float64]] = None) -> SolverResult:
        """Solve the problem.

        Parameters
        ----------
         x0 : vector, optional
            Initial guess. Defaults to the problem's kick starter, if any.

        Returns
        -------
         res : SolverResult
            The solution.

        """
        if x0 is None:
            x0 = self.problem.kick_starter
        return self.solve_from(x0)

    @abstractmethod
    def solve_from(self, x0: Optional[npt.NDArray[np.float64]]) -> SolverResult:
        """Solve the problem starting from `x0` (which may be None)."""


class ScipyLinearSolver(Solver):
    r"""Hand a linear program to `scipy.optimize.linprog`.

    Solves:
       minimize    C^T * x
       subject to  AE * x  = BE
                   AI * x <= BI,
    with x free. The multipliers written to the state follow the Lagrangian
       L(x, nu, lambda) = C^T * x + nu^T * (AE * x - BE) + lambda^T * (AI * x - BI),
    so LI >= 0. linprog reports sensitivities of the optimal value to the right-hand
    sides, which are the negated multipliers.

    Notes
    -----
    The HiGHS methods don't accept an initial guess, so `x0` is ignored.

    """

    def solve_from(self, x0: Optional[npt.NDArray[np.float64]]) -> SolverResult:
        """Solve the linear program."""
        problem = self.problem
        if problem.is_quadratic():
            raise ConfigurationError(
                "ScipyLinearSolver only handles linear objectives!"
            )

        n = self.num_variables
        c = np.zeros(n) if problem.C is None else problem.C[:, 0]
        res = linprog(
            c,
            A_ub=problem.AI,
            b_ub=None if problem.BI is None else problem.BI[:, 0],
            A_eq=problem.AE,
            b_eq=None if problem.BE is None else problem.BE[:, 0],
            bounds=(None, None),
            method=self.settings.method,
        )
        if self.settings.verbose:
            print(f"  linprog: {res.message}")

        if res.status != 0:
            raise SolverError(res.message, res.status)

        self.state.fill_x(res.x)
        if problem.has_equalities():
            self.state.get_le()[:] = -res.eqlin.marginals
        if problem.has_inequalities():
            self.state.get_li()[:] = -res.ineqlin.marginals

        return SolverResult(
            solution=self.state.get_x().copy(),
            objective_value=float(res.fun),
            equality_multipliers=self.state.get_le().copy(),
            inequality_multipliers=self.state.get_li().copy(),
            status=res.status,
            message=res.message,
        )
