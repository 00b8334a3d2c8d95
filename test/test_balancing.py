"""Test balancing."""

import numpy as np
import pytest
from scipy.optimize import linprog

from pyqp.assembler import AssemblySettings, ProblemAssembler
from pyqp.balancing import (
    balance_matrices,
    balance_problem,
    balance_rows,
    row_scale_factors,
    unscale_multipliers,
)
from pyqp.problem import Problem


def test_row_scale_factors() -> None:
    """Each row gets its own power of ten."""
    body = np.array([[1000.0, 10.0], [0.001, 0.0], [1.0, 1.0]])
    rhs = np.array([[100.0], [0.005], [1.0]])
    factors = row_scale_factors(body, rhs, assert_positive_rhs=False)
    np.testing.assert_allclose(factors, [1e-2, 1e2, 1.0])


def test_equality_rows_with_negative_rhs_are_flipped() -> None:
    """Negative right-hand sides become nonnegative; the equation is unchanged."""
    body = np.array([[2.0, -3.0], [1.0, 1.0]])
    rhs = np.array([[-4.0], [5.0]])

    new_body, new_rhs, factors = balance_rows(body, rhs, assert_positive_rhs=True)
    assert np.all(new_rhs >= 0)
    np.testing.assert_allclose(factors, [-1.0, 1.0])
    np.testing.assert_allclose(new_body[0], [-2.0, 3.0])

    # Inputs are untouched
    np.testing.assert_array_equal(rhs, [[-4.0], [5.0]])


def test_inequality_rows_are_never_flipped() -> None:
    """Flipping an inequality row would reverse it."""
    body = np.array([[2.0, -3.0]])
    rhs = np.array([[-4.0]])
    new_body, new_rhs, factors = balance_rows(body, rhs, assert_positive_rhs=False)
    assert factors[0] > 0
    assert new_rhs[0, 0] < 0


def test_balance_matrices_uses_one_factor() -> None:
    """Q and C are scaled together."""
    Q = np.array([[200.0, 0.0], [0.0, 400.0]])
    C = np.array([[100.0], [300.0]])
    (new_Q, new_C), factor = balance_matrices(Q, C)
    assert factor == pytest.approx(1e-2)
    np.testing.assert_allclose(new_Q, Q * 1e-2)
    np.testing.assert_allclose(new_C, C * 1e-2)

    (new_Q, new_C), factor = balance_matrices(None, C)
    assert new_Q is None
    np.testing.assert_allclose(new_C, C * factor)


@pytest.mark.parametrize(
    "seed,n,m_e,m_i",
    [
        (101, 5, 2, 3),
        (201, 10, 4, 12),
        (301, 3, 1, 1),
        (401, 20, 0, 8),
        (501, 6, 3, 0),
    ],
)
def test_balancing_preserves_dimensions_and_solutions(
    seed: int, n: int, m_e: int, m_i: int
) -> None:
    """Balancing changes neither the dimensions nor the points satisfying AE*x = BE."""
    np.random.seed(seed)
    scales = 10.0 ** np.random.randint(-5, 6, size=(m_e + m_i, 1))
    x = np.random.randn(n)

    AE = scales[:m_e] * np.random.randn(m_e, n)
    BE = AE @ x
    AI = scales[m_e:] * np.random.randn(m_i, n)
    BI = AI @ x + np.random.rand(m_i)

    assembler = ProblemAssembler.from_matrices(
        AE=AE if m_e > 0 else None,
        BE=BE if m_e > 0 else None,
        AI=AI if m_i > 0 else None,
        BI=BI if m_i > 0 else None,
        C=1e4 * np.random.randn(n),
    )
    before = assembler.problem
    assembler.balance()
    after = assembler.problem

    assert after.num_variables == n
    assert after.num_eq_constraints == m_e
    assert after.num_ineq_constraints == m_i

    # x still satisfies every equality and has the same slack sign on inequalities
    state = assembler.solution
    state.fill_x(x)
    if m_e > 0:
        np.testing.assert_allclose(state.slack_equalities(), 0.0, atol=1e-8)
        assert np.all(after.BE >= 0)
    if m_i > 0:
        assert np.all(state.slack_inequalities() > 0)
        np.testing.assert_allclose(
            after.BI[:, 0], before.BI[:, 0] * assembler.balance_factors.inequalities
        )

    # Rows are centered around one
    for body, rhs in ((after.AE, after.BE), (after.AI, after.BI)):
        if body is None:
            continue
        for ii in range(body.shape[0]):
            row = np.abs(np.concatenate((body[ii], rhs[ii])))
            row = row[row > 0]
            assert abs(0.5 * np.log10(row.min() * row.max())) <= 1.0 + 1e-9


def test_balance_does_not_mutate_previous_problem() -> None:
    """Problems handed out before balancing are unaffected."""
    assembler = ProblemAssembler()
    assembler.append_equalities([[1000.0, 2000.0]], [-3000.0])
    problem, _ = assembler.build()
    assembler.balance()
    np.testing.assert_array_equal(problem.AE, [[1000.0, 2000.0]])
    np.testing.assert_allclose(assembler.AE, [[-1.0, -2.0]])
    np.testing.assert_allclose(assembler.BE, [[3.0]])


def test_balance_objective_can_be_disabled() -> None:
    """With balance_objective=False, C is untouched."""
    settings = AssemblySettings(balance_objective=False)
    assembler = ProblemAssembler(settings=settings)
    assembler.append_inequalities([[1000.0, 0.0]], [1000.0])
    assembler.set_objective(C=[1e5, 1e5])
    assembler.balance()
    np.testing.assert_array_equal(assembler.C[:, 0], [1e5, 1e5])
    assert assembler.balance_factors.objective == 1.0
    np.testing.assert_allclose(assembler.AI, [[1.0, 0.0]])


def test_balance_factors_compose_and_reset() -> None:
    """Balancing twice composes factors; further appends clear them."""
    assembler = ProblemAssembler()
    assembler.append_inequalities([[500.0, 0.0]], [500.0])
    assembler.balance()
    first = assembler.balance_factors.inequalities.copy()
    assembler.balance()
    composite = assembler.balance_factors.inequalities[0]
    np.testing.assert_allclose(assembler.AI, np.array([[500.0, 0.0]]) * composite)
    assert assembler.balance_factors.inequalities.shape == first.shape

    assembler.append_inequalities([[1.0, 1.0]], [1.0])
    assert assembler.balance_factors is None


def test_balance_empty_assembler() -> None:
    """Nothing to balance."""
    assembler = ProblemAssembler()
    assert assembler.balance() is assembler
    assert assembler.balance_factors is None


def test_balance_problem_verbose(capsys) -> None:
    """Verbose balancing prints the factors."""
    problem = Problem(
        AE=np.array([[10.0, 20.0]]),
        BE=np.array([[30.0]]),
        C=np.array([[1.0], [1.0]]),
    )
    balance_problem(problem, verbose=True)
    out = capsys.readouterr().out
    assert "equality" in out
    assert "objective" in out


def test_balancing_preserves_lp_optimum() -> None:
    """The balanced LP has the same solution; multipliers unscale to the originals."""
    assembler = ProblemAssembler()
    assembler.append_equalities([[1000.0, 1000.0]], [2000.0])
    assembler.append_inequalities([[0.001, 0.0]], [0.005])
    assembler.set_objective(C=[-1000.0, 0.0])

    def solve(problem):
        res = linprog(
            problem.C[:, 0],
            A_ub=problem.AI,
            b_ub=problem.BI[:, 0],
            A_eq=problem.AE,
            b_eq=problem.BE[:, 0],
            bounds=(None, None),
            method="highs",
        )
        assert res.status == 0
        return res

    original = solve(assembler.problem)
    assembler.balance()
    balanced = solve(assembler.problem)

    np.testing.assert_allclose(balanced.x, original.x, atol=1e-8)
    np.testing.assert_allclose(balanced.x, [5.0, -3.0], atol=1e-8)
    np.testing.assert_allclose(assembler.AI, [[0.1, 0.0]])
    np.testing.assert_allclose(assembler.C[:, 0], [-1.0, 0.0])

    LE, LI = unscale_multipliers(
        -balanced.eqlin.marginals,
        -balanced.ineqlin.marginals,
        assembler.balance_factors,
    )
    np.testing.assert_allclose(LE, -original.eqlin.marginals, atol=1e-6)
    np.testing.assert_allclose(LI, -original.ineqlin.marginals, rtol=1e-6)
    np.testing.assert_allclose(LI, [1e6], rtol=1e-6)


def test_unscale_multipliers_checks_lengths() -> None:
    """Multipliers must match the factors."""
    assembler = ProblemAssembler()
    assembler.append_equalities([[1.0, 1.0]], [1.0]).balance()
    with pytest.raises(ValueError):
        unscale_multipliers(np.zeros(2), np.zeros(0), assembler.balance_factors)
