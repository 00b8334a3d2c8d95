"""Test SolutionState."""

import numpy as np
import pytest

from pyqp.assembler import ProblemAssembler
from pyqp.problem import Problem
from pyqp.solution import SolutionState
from pyqp.validation import validate_problem


def _example_assembler() -> ProblemAssembler:
    assembler = ProblemAssembler()
    assembler.append_equalities(AE=[[1.0, 1.0]], BE=[2.0])
    assembler.append_inequalities(AI=[[1.0, 0.0]], BI=[5.0], provenance=["cap1"])
    assembler.set_objective(C=[[1.0], [1.0]])
    return assembler


def test_end_to_end() -> None:
    """Slacks and multipliers for a small problem."""
    problem, state = _example_assembler().build()
    state.set_x(0, 1.0)
    state.set_x(1, 1.0)

    np.testing.assert_allclose(state.slack_equalities(), [0.0])
    np.testing.assert_allclose(state.slack_inequalities(), [4.0])
    np.testing.assert_array_equal(state.dual_inequalities_for([0]), [0.0])

    state.set_li(0, 2.5)
    np.testing.assert_array_equal(state.dual_inequalities_for([0]), [2.5])
    np.testing.assert_array_equal(state.dual_inequalities_for_entity("cap1"), [2.5])
    assert state.dual_inequalities_for_entity("other").shape == (0,)


def test_vectors_are_lazy_and_owned() -> None:
    """The same zero vector is returned on every call."""
    problem, state = _example_assembler().build()
    x = state.get_x()
    assert x.shape == (2,)
    assert state.get_le().shape == (1,)
    assert state.get_li().shape == (1,)
    np.testing.assert_array_equal(x, 0.0)

    state.set_x(1, 3.0)
    assert state.get_x() is x
    assert state.X is x
    assert x[1] == 3.0
    assert state.LE is state.get_le()


def test_reset() -> None:
    """Reset fills with zeros, in place."""
    _, state = _example_assembler().build()
    x = state.get_x()
    state.fill_x([4.0, 5.0])
    state.set_le(0, 1.0)
    state.set_li(0, 1.0)
    state.reset_x()
    state.reset_le()
    state.reset_li()
    assert state.get_x() is x
    np.testing.assert_array_equal(x, 0.0)
    np.testing.assert_array_equal(state.get_le(), 0.0)
    np.testing.assert_array_equal(state.get_li(), 0.0)


def test_fill_x_checks_length() -> None:
    """A full solution must have one entry per variable."""
    _, state = _example_assembler().build()
    with pytest.raises(ValueError):
        state.fill_x([1.0, 2.0, 3.0])


def test_slack_unavailable_without_constraints() -> None:
    """Slacks are None exactly when their blocks are absent."""
    state = SolutionState(validate_problem(Problem(C=np.ones((2, 1)))))
    assert state.slack_equalities() is None
    assert state.slack_inequalities() is None
    assert state.get_le().shape == (0,)
    assert state.get_li().shape == (0,)

    assembler = ProblemAssembler()
    assembler.append_inequalities([[1.0, 0.0]], [1.0])
    assert assembler.solution.slack_equalities() is None
    assert assembler.solution.slack_inequalities() is not None


@pytest.mark.parametrize(
    "seed,n,m_e,m_i",
    [
        (101, 5, 2, 3),
        (201, 10, 4, 12),
        (301, 3, 1, 1),
    ],
)
def test_slacks_match_definition(seed: int, n: int, m_e: int, m_i: int) -> None:
    """SE = BE - AE * X and SI = BI - AI * X."""
    np.random.seed(seed)
    AE, BE = np.random.randn(m_e, n), np.random.randn(m_e)
    AI, BI = np.random.randn(m_i, n), np.random.randn(m_i)
    x = np.random.randn(n)

    problem, state = ProblemAssembler.from_matrices(AE=AE, BE=BE, AI=AI, BI=BI).build()
    state.fill_x(x)

    np.testing.assert_allclose(state.slack_equalities(), BE - AE @ x)
    np.testing.assert_allclose(state.slack_inequalities(), BI - AI @ x)

    rows = [m_i - 1, 0]
    np.testing.assert_allclose(state.slack_inequalities(rows), (BI - AI @ x)[rows])


def test_dual_inequalities_preserve_order() -> None:
    """Selected multipliers come back in the order requested."""
    assembler = ProblemAssembler()
    assembler.append_inequalities(np.eye(3), np.ones(3), provenance=["a", "b", "a"])
    _, state = assembler.build()
    for ii, value in enumerate([10.0, 20.0, 30.0]):
        state.set_li(ii, value)

    np.testing.assert_array_equal(state.dual_inequalities_for([2, 0]), [30.0, 10.0])
    np.testing.assert_array_equal(state.dual_inequalities_for_entity("a"), [10.0, 30.0])


def test_snapshot_is_independent() -> None:
    """Snapshots own copies of the vectors."""
    problem, state = _example_assembler().build()
    state.set_x(0, 1.0)
    copy = state.snapshot()
    assert copy.source is problem
    copy.set_x(0, 2.0)
    assert state.get_x()[0] == 1.0
    assert copy.get_x()[0] == 2.0


def test_str() -> None:
    """Structured dump, with ? for unavailable values."""
    _, state = _example_assembler().build()
    dump = str(state)
    assert "[X] = [0., 0.]" in dump
    assert "[SI] = [5.]" in dump

    assert "[SE] = ?" in str(SolutionState(Problem()))


def test_problem_str() -> None:
    """The problem dump lists every block and the provenance."""
    problem, _ = _example_assembler().build()
    dump = str(problem)
    assert dump.startswith("<Problem>")
    assert "[Q] = ?" in dump
    assert "[BI] = [[5.]]" in dump
    assert "[provenance] = ['cap1']" in dump
    assert problem.inequality_rows_for("cap1") == [0]
