"""Solution vector, Lagrange multipliers and slacks."""

from collections.abc import Hashable, Sequence
from typing import Optional

import numpy as np
import numpy.typing as npt

from .numerical_helpers import as_vector
from .problem import ProblemSource, count_variables, format_block, rows_for_entity


class SolutionState:
    """Mutable solution state for one problem.

    Holds the variables, X, the multipliers for the equality constraints, LE, and the
    multipliers for the inequality constraints, LI. Each vector is allocated as zeros
    the first time it is requested, with its length taken from the problem, and every
    later request returns the same array. An external solver writes its results here
    via the setters.

    Parameters
    ----------
     source : Problem or ProblemAssembler
        Where to read the blocks from. A ProblemAssembler is read live, and calls
        `conform` after every mutation so the vectors keep one entry per variable and
        per constraint.

    """

    def __init__(self, source: ProblemSource) -> None:
        """Create a SolutionState."""
        self.source = source
        self._X: Optional[npt.NDArray[np.float64]] = None
        self._LE: Optional[npt.NDArray[np.float64]] = None
        self._LI: Optional[npt.NDArray[np.float64]] = None

    def get_x(self) -> npt.NDArray[np.float64]:
        """Solution / variables: [X]."""
        if self._X is None:
            s = self.source
            self._X = np.zeros(count_variables(s.AE, s.AI, s.Q, s.C))
        return self._X

    def get_le(self) -> npt.NDArray[np.float64]:
        """Lagrange multipliers / dual variables for equalities: [LE]."""
        if self._LE is None:
            AE = self.source.AE
            self._LE = np.zeros(0 if AE is None else AE.shape[0])
        return self._LE

    def get_li(self) -> npt.NDArray[np.float64]:
        """Lagrange multipliers / dual variables for inequalities: [LI]."""
        if self._LI is None:
            AI = self.source.AI
            self._LI = np.zeros(0 if AI is None else AI.shape[0])
        return self._LI

    X = property(get_x)
    LE = property(get_le)
    LI = property(get_li)

    def set_x(self, index: int, value: float) -> None:
        self.get_x()[index] = value

    def set_le(self, index: int, value: float) -> None:
        self.get_le()[index] = value

    def set_li(self, index: int, value: float) -> None:
        self.get_li()[index] = value

    def fill_x(self, solution: Sequence[float] | npt.NDArray[np.float64]) -> None:
        """Copy a full solution into X."""
        x = self.get_x()
        values = as_vector(solution, "X")
        if values.shape != x.shape:
            raise ValueError("Solution must have one entry per variable.")
        x[:] = values

    def conform(self) -> None:
        """Resize allocated vectors to the current dimensions of the source.

        Entries of variables and constraints that still exist are kept; entries for
        newly appended rows are zero. Vectors not yet allocated are left alone.

        """
        s = self.source
        if s.AE is None and s.AI is None and s.Q is None and s.C is None:
            self._X, self._LE, self._LI = None, None, None
            return

        if self._X is not None:
            self._X = _resized(self._X, count_variables(s.AE, s.AI, s.Q, s.C))
        if self._LE is not None:
            self._LE = _resized(self._LE, 0 if s.AE is None else s.AE.shape[0])
        if self._LI is not None:
            self._LI = _resized(self._LI, 0 if s.AI is None else s.AI.shape[0])

    def reset_x(self) -> None:
        self.get_x().fill(0.0)

    def reset_le(self) -> None:
        self.get_le().fill(0.0)

    def reset_li(self) -> None:
        self.get_li().fill(0.0)

    def slack_equalities(self) -> Optional[npt.NDArray[np.float64]]:
        """Slack for equalities: [SE] = [BE] - [AE][X].

        Returns
        -------
         SE : vector or None
            None when there are no equality constraints.

        """
        AE, BE = self.source.AE, self.source.BE
        if AE is None or BE is None:
            return None
        return BE[:, 0] - AE @ self.get_x()

    def slack_inequalities(
        self, rows: Optional[Sequence[int]] = None
    ) -> Optional[npt.NDArray[np.float64]]:
        """Slack for inequalities: [SI] = [BI] - [AI][X].

        Parameters
        ----------
         rows : list of int, optional
            If specified, only return the slack of these rows, in this order.

        Returns
        -------
         SI : vector or None
            None when there are no inequality constraints.

        """
        AI, BI = self.source.AI, self.source.BI
        if AI is None or BI is None:
            return None
        SI = BI[:, 0] - AI @ self.get_x()
        if rows is not None:
            return SI[list(rows)]
        return SI

    def dual_inequalities_for(self, rows: Sequence[int]) -> npt.NDArray[np.float64]:
        """Lagrange multipliers for selected inequalities, in the order given."""
        return self.get_li()[list(rows)]

    def dual_inequalities_for_entity(
        self, entity: Hashable
    ) -> npt.NDArray[np.float64]:
        """Lagrange multipliers of the inequality rows originating from `entity`."""
        rows = rows_for_entity(self.source.inequality_provenance, entity)
        return self.dual_inequalities_for(rows)

    def snapshot(self, source: Optional[ProblemSource] = None) -> "SolutionState":
        """Independent copy of this state.

        Parameters
        ----------
         source : Problem or ProblemAssembler, optional
            Source for the copy to read blocks from. Defaults to this state's source.

        Returns
        -------
         state : SolutionState
            A state owning copies of X, LE and LI (those that have been allocated).

        """
        state = SolutionState(self.source if source is None else source)
        if self._X is not None:
            state._X = self._X.copy()
        if self._LE is not None:
            state._LE = self._LE.copy()
        if self._LI is not None:
            state._LI = self._LI.copy()
        return state

    def __str__(self) -> str:
        """Structured dump of X, LE, LI, SE and SI."""
        s = self.source
        if s.AE is None and s.AI is None and s.Q is None and s.C is None:
            names = ("X", "LE", "LI", "SE", "SI")
            return "\n".join(f"[{name}] = ?" for name in names)

        lines = [
            format_block("X", self.get_x()),
            format_block("LE", self.get_le()),
            format_block("LI", self.get_li()),
            format_block("SE", self.slack_equalities()),
            format_block("SI", self.slack_inequalities()),
        ]
        return "\n".join(lines)


def _resized(v: npt.NDArray[np.float64], m: int) -> npt.NDArray[np.float64]:
    """Return v if it already has length m, else a zero-padded or truncated copy."""
    if v.shape[0] == m:
        return v
    resized = np.zeros(m)
    k = min(m, v.shape[0])
    resized[:k] = v[:k]
    return resized
