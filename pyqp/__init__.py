"""Assembly, balancing and solution bookkeeping for linear and quadratic programs."""

from .assembler import AssemblySettings, ProblemAssembler
from .balancing import (
    BalanceFactors,
    balance_matrices,
    balance_problem,
    balance_rows,
    unscale_multipliers,
)
from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    ProvenanceError,
    SolverError,
    UndecidableVariableCountError,
)
from .numerical_helpers import adjustment_factor_exponent, magnitude_range
from .problem import Problem, count_variables
from .solution import SolutionState
from .solver import ScipyLinearSolver, Solver, SolverResult, SolverSettings
from .validation import validate_problem

__all__ = [
    "AssemblySettings",
    "BalanceFactors",
    "ConfigurationError",
    "DimensionMismatchError",
    "Problem",
    "ProblemAssembler",
    "ProvenanceError",
    "ScipyLinearSolver",
    "SolutionState",
    "Solver",
    "SolverError",
    "SolverResult",
    "SolverSettings",
    "UndecidableVariableCountError",
    "adjustment_factor_exponent",
    "balance_matrices",
    "balance_problem",
    "balance_rows",
    "count_variables",
    "magnitude_range",
    "unscale_multipliers",
    "validate_problem",
]
