r"""Incremental assembly of linear and quadratic programs.

A modeling layer builds a problem of the form:
    minimize    (1/2) * x^T * Q * x + C^T * x
    subject to  AE * x  = BE
                AI * x <= BI
one block at a time. Equality and inequality blocks are stacked below whatever has been
appended so far; the objective is replaced. Every mutation is validated immediately,
so a dimension mismatch surfaces at the call that caused it.

Usage
-----
    assembler = ProblemAssembler()
    assembler.append_equalities(AE=[[1.0, 1.0]], BE=[2.0])
    assembler.append_inequalities(AI=[[1.0, 0.0]], BI=[5.0], provenance=["cap1"])
    assembler.set_objective(C=[1.0, 1.0])
    problem, state = assembler.balance().build()

The problem is then handed to a solver, which reports the solution and Lagrange
multipliers through the state.

"""

import dataclasses
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal, Optional

import numpy as np
import numpy.typing as npt

from .balancing import BalanceFactors, balance_problem
from .exceptions import ConfigurationError, DimensionMismatchError, ProvenanceError
from .numerical_helpers import as_column, as_matrix, as_vector, read_only
from .problem import Problem, count_variables, format_problem
from .solution import SolutionState
from .validation import validate_problem


@dataclass
class AssemblySettings:
    """Assembly settings.

    Parameters
    ----------
    mixed_provenance : {"pad", "reject"}, default="pad"
        What to do when provenance is supplied for some inequality blocks but not
        others. "pad" fills the missing entries with None; "reject" raises a
        ProvenanceError.
    balance_objective : bool, default=True
        If False, `balance` rescales constraint rows but leaves Q and C untouched.
    verbose : bool, default=False
        If True, print each mutation along with the resulting dimensions.

    """

    mixed_provenance: Literal["pad", "reject"] = "pad"
    balance_objective: bool = True
    verbose: bool = False


class ProblemAssembler:
    """Accumulate constraint and objective blocks.

    Parameters
    ----------
     settings : AssemblySettings, optional
        Assembly settings.

    Attributes
    ----------
     solution : SolutionState
        Solution state reading this assembler's current blocks, for solvers that work
        directly against the assembler.
     balance_factors : BalanceFactors or None
        Factors applied by the most recent call(s) to `balance`. Reset by any later
        mutation, since newly appended rows are unscaled.

    """

    def __init__(self, settings: Optional[AssemblySettings] = None) -> None:
        """Create an empty assembler."""
        if settings is None:
            self.settings: AssemblySettings = AssemblySettings()
        else:
            self.settings = settings

        self._problem = Problem()
        self.balance_factors: Optional[BalanceFactors] = None
        self.solution = SolutionState(self)

    @classmethod
    def from_matrices(
        cls,
        AE: Any = None,
        BE: Any = None,
        Q: Any = None,
        C: Any = None,
        AI: Any = None,
        BI: Any = None,
        provenance: Optional[Sequence[Any]] = None,
        kick_starter: Any = None,
        settings: Optional[AssemblySettings] = None,
    ) -> "ProblemAssembler":
        """Create an assembler from every block at once, validating a single time.

        A Q without C gets a zero C.

        Raises
        ------
         ConfigurationError
            If BE is given without AE, or BI or provenance without AI.

        """
        if AE is None and BE is not None:
            raise ConfigurationError("BE was given without AE!")
        if AI is None and (BI is not None or provenance is not None):
            raise ConfigurationError("BI and provenance need AI!")

        assembler = cls(settings=settings)
        if AE is not None:
            AE = as_matrix(AE, "AE")
            BE = None if BE is None else as_column(BE, "BE")

        if AI is not None:
            AI = as_matrix(AI, "AI")
            BI = None if BI is None else as_column(BI, "BI")
            if provenance is not None:
                provenance = tuple(provenance)

        candidate = Problem(
            AE=read_only(AE),
            BE=read_only(BE),
            AI=read_only(AI),
            BI=read_only(BI),
            Q=read_only(None if Q is None else as_matrix(Q, "Q")),
            C=read_only(None if C is None else as_column(C, "C")),
            inequality_provenance=provenance,
        )
        if kick_starter is not None:
            candidate = dataclasses.replace(
                candidate,
                kick_starter=read_only(as_vector(kick_starter, "kick_starter")),
            )
        assembler._commit(candidate)
        return assembler

    @classmethod
    def from_problem(
        cls, problem: Problem, settings: Optional[AssemblySettings] = None
    ) -> "ProblemAssembler":
        """Create an assembler holding copies of the blocks of `problem`."""
        return cls.from_matrices(
            AE=problem.AE,
            BE=problem.BE,
            Q=problem.Q,
            C=problem.C,
            AI=problem.AI,
            BI=problem.BI,
            provenance=problem.inequality_provenance,
            kick_starter=problem.kick_starter,
            settings=settings,
        )

    @property
    def problem(self) -> Problem:
        """The validated problem as assembled so far."""
        return self._problem

    @property
    def AE(self) -> Optional[npt.NDArray[np.float64]]:
        """[AE][X] == [BE]"""
        return self._problem.AE

    @property
    def BE(self) -> Optional[npt.NDArray[np.float64]]:
        """[AE][X] == [BE]"""
        return self._problem.BE

    @property
    def AI(self) -> Optional[npt.NDArray[np.float64]]:
        """[AI][X] <= [BI]"""
        return self._problem.AI

    @property
    def BI(self) -> Optional[npt.NDArray[np.float64]]:
        """[AI][X] <= [BI]"""
        return self._problem.BI

    @property
    def Q(self) -> Optional[npt.NDArray[np.float64]]:
        """Quadratic objective: [Q]"""
        return self._problem.Q

    @property
    def C(self) -> Optional[npt.NDArray[np.float64]]:
        """Linear objective: [C]"""
        return self._problem.C

    @property
    def inequality_provenance(self) -> Optional[tuple[Any, ...]]:
        return self._problem.inequality_provenance

    @property
    def kick_starter(self) -> Optional[npt.NDArray[np.float64]]:
        return self._problem.kick_starter

    def has_equalities(self) -> bool:
        return self._problem.has_equalities()

    def has_inequalities(self) -> bool:
        return self._problem.has_inequalities()

    def has_objective(self) -> bool:
        return self._problem.has_objective()

    def has_inequality_provenance(self) -> bool:
        return self._problem.inequality_provenance is not None

    def has_kick_starter(self) -> bool:
        return self._problem.kick_starter is not None

    def count_equalities(self) -> int:
        return self._problem.num_eq_constraints

    def count_inequalities(self) -> int:
        return self._problem.num_ineq_constraints

    def count_variables(self) -> int:
        """Count variables.

        Raises
        ------
         UndecidableVariableCountError
            If there are no constraints and no objective.

        """
        return self._problem.num_variables

    def append_equalities(self, AE: Any, BE: Any = None) -> "ProblemAssembler":
        """Append equality constraints, AE * x = BE.

        Parameters
        ----------
         AE : matrix
            Coefficients, one row per constraint.
         BE : vector, optional
            Right-hand side. Defaults to zeros.

        Returns
        -------
         self : ProblemAssembler
            For chaining.

        Raises
        ------
         DimensionMismatchError
            If AE's column count disagrees with the number of variables, or BE doesn't
            match AE.

        """
        block = validate_problem(
            Problem(
                AE=read_only(as_matrix(AE, "AE")),
                BE=read_only(None if BE is None else as_column(BE, "BE")),
            )
        )
        if block.AE is None:
            return self

        self._check_columns("AE", block.AE)
        if self._problem.AE is None:
            AE, BE = block.AE, block.BE
        else:
            AE = np.vstack((self._problem.AE, block.AE))
            BE = np.vstack((self._problem.BE, block.BE))

        self._commit(
            dataclasses.replace(self._problem, AE=read_only(AE), BE=read_only(BE))
        )
        if self.settings.verbose:
            print(
                f"  Appended {block.AE.shape[0]} equality row(s); "
                f"AE is now {AE.shape[0]}x{AE.shape[1]}"
            )
        return self

    def append_inequalities(
        self, AI: Any, BI: Any = None, provenance: Optional[Sequence[Any]] = None
    ) -> "ProblemAssembler":
        """Append inequality constraints, AI * x <= BI.

        Parameters
        ----------
         AI : matrix
            Coefficients, one row per constraint.
         BI : vector, optional
            Right-hand side. Defaults to zeros.
         provenance : sequence, optional
            One reference per row of AI identifying the constraint that produced it.
            See `AssemblySettings.mixed_provenance` for what happens when provenance is
            given for some blocks but not others.

        Returns
        -------
         self : ProblemAssembler
            For chaining.

        Raises
        ------
         DimensionMismatchError
            If AI's column count disagrees with the number of variables, or BI doesn't
            match AI.
         ProvenanceError
            If provenance doesn't have one entry per row, or is mixed and the settings
            say to reject that.

        """
        AI = as_matrix(AI, "AI")
        if provenance is not None:
            provenance = tuple(provenance)
            if len(provenance) != AI.shape[0]:
                raise ProvenanceError(
                    f"Provenance has {len(provenance)} entries but AI has "
                    f"{AI.shape[0]} rows!"
                )

        block = validate_problem(
            Problem(
                AI=read_only(AI),
                BI=read_only(None if BI is None else as_column(BI, "BI")),
                inequality_provenance=provenance,
            )
        )
        if block.AI is None:
            return self

        self._check_columns("AI", block.AI)
        existing = self._problem
        if existing.AI is None:
            AI, BI = block.AI, block.BI
            provenance = block.inequality_provenance
        else:
            AI = np.vstack((existing.AI, block.AI))
            BI = np.vstack((existing.BI, block.BI))
            provenance = self._merge_provenance(
                existing.inequality_provenance,
                existing.AI.shape[0],
                block.inequality_provenance,
                block.AI.shape[0],
            )

        self._commit(
            dataclasses.replace(
                existing,
                AI=read_only(AI),
                BI=read_only(BI),
                inequality_provenance=provenance,
            )
        )
        if self.settings.verbose:
            print(
                f"  Appended {block.AI.shape[0]} inequality row(s); "
                f"AI is now {AI.shape[0]}x{AI.shape[1]}"
            )
        return self

    def set_objective(self, C: Any = None, Q: Any = None) -> "ProblemAssembler":
        """Replace the objective.

        Parameters
        ----------
         C : vector, optional
            Linear objective. Defaults to zeros when Q is specified.
         Q : matrix, optional
            Quadratic objective. When not specified the objective is linear, and any Q
            set previously is cleared.

        Returns
        -------
         self : ProblemAssembler
            For chaining.

        """
        if C is None and Q is None:
            raise ConfigurationError("Objective needs C, Q or both!")

        Q = None if Q is None else as_matrix(Q, "Q")
        if C is not None:
            C = as_column(C, "C")
        else:
            C = np.zeros((Q.shape[0], 1))

        self._commit(
            dataclasses.replace(self._problem, Q=read_only(Q), C=read_only(C))
        )
        if self.settings.verbose:
            kind = "linear" if Q is None else "quadratic"
            print(f"  Set {kind} objective over {C.shape[0]} variable(s)")
        return self

    def set_kick_starter(self, x0: Any) -> "ProblemAssembler":
        """Set an initial guess for the solver."""
        self._commit(
            dataclasses.replace(
                self._problem, kick_starter=read_only(as_vector(x0, "kick_starter"))
            ),
            keep_balance_factors=True,
        )
        return self

    def balance(self) -> "ProblemAssembler":
        """Rescale the problem to minimize rounding and representation errors.

        Each constraint row is multiplied by a power of ten so that its coefficients
        are centered around one, and so is the objective as a whole. Equality rows with
        a negative right-hand side are also negated. See `pyqp.balancing`.

        Returns
        -------
         self : ProblemAssembler
            For chaining.

        """
        p = self._problem
        if not (p.has_equalities() or p.has_inequalities() or p.has_objective()):
            return self

        problem, factors = balance_problem(
            self._problem,
            balance_objective=self.settings.balance_objective,
            verbose=self.settings.verbose,
        )
        if self.balance_factors is not None:
            factors = BalanceFactors(
                equalities=read_only(
                    self.balance_factors.equalities * factors.equalities
                ),
                inequalities=read_only(
                    self.balance_factors.inequalities * factors.inequalities
                ),
                objective=self.balance_factors.objective * factors.objective,
            )
        self._problem = problem
        self.solution.conform()
        self.balance_factors = factors
        return self

    def build(self) -> tuple[Problem, SolutionState]:
        """Snapshot the problem for a solver.

        Returns
        -------
         problem : Problem
            Immutable problem.
         state : SolutionState
            Fresh solution state for `problem`.

        Raises
        ------
         UndecidableVariableCountError
            If nothing has been assembled.

        """
        self.count_variables()
        return self._problem, SolutionState(self._problem)

    def snapshot(self) -> "ProblemAssembler":
        """Independent copy of this assembler.

        Blocks are shared, since they're immutable. X, LE and LI are copied, so the
        copy's solution state can be modified without affecting this one.

        """
        assembler = ProblemAssembler(settings=dataclasses.replace(self.settings))
        assembler._problem = self._problem
        assembler.balance_factors = self.balance_factors
        assembler.solution = self.solution.snapshot(source=assembler)
        return assembler

    copy = snapshot

    def _check_columns(self, name: str, block: npt.NDArray[np.float64]) -> None:
        p = self._problem
        if p.AE is None and p.AI is None and p.Q is None and p.C is None:
            return

        n = count_variables(p.AE, p.AI, p.Q, p.C)
        if block.shape[1] != n:
            raise DimensionMismatchError(
                f"{name} has the wrong number of columns!", name, block.shape, (None, n)
            )

    def _merge_provenance(
        self,
        old: Optional[tuple[Any, ...]],
        m_old: int,
        new: Optional[tuple[Any, ...]],
        m_new: int,
    ) -> Optional[tuple[Any, ...]]:
        if old is None and new is None:
            return None
        elif old is not None and new is not None:
            return old + new

        if self.settings.mixed_provenance == "reject":
            raise ProvenanceError(
                "Provenance must be given for every inequality block or for none!"
            )
        return (old or (None,) * m_old) + (new or (None,) * m_new)

    def _commit(self, candidate: Problem, keep_balance_factors: bool = False) -> None:
        """Validate a candidate problem and, if valid, adopt it."""
        self._problem = validate_problem(candidate)
        self.solution.conform()
        if not keep_balance_factors:
            self.balance_factors = None

    def __str__(self) -> str:
        """Structured dump of every block and of the solution state."""
        name = self.__class__.__name__
        lines = [f"<{name}>"]
        lines.extend(format_problem(self._problem))
        lines.append(str(self.solution))
        lines.append(f"</{name}>")
        return "\n".join(lines)
