import numpy as np
import pytest

from admmnet import costs, distributed_solvers, networks, solvers, utils
from admmnet.config import RunConfig
from admmnet.distributed_solvers import CurvatureADMM, DifferenceADMM, RelaxedADMM


def all_rules():
    return [RelaxedADMM(1.0, 0.5), DifferenceADMM(1.0, 0.5, node_weight=0.05, forget=0.1), CurvatureADMM()]


#%% CONVERGENCE

def test_relaxed_admm_halves_the_error(pair_problem):
    run = distributed_solvers.relaxed_admm(pair_problem, 1.0, 0.5, num_iter=20)

    # with identity data each round halves the distance from the mean
    expected = np.sqrt(10) / 2**np.arange(1, 21)
    np.testing.assert_allclose(run.error, expected, rtol=1e-6)

    assert np.all(np.diff(run.error) < 0)
    assert run.converged_round == 17
    assert run.num_rounds == 20 and not run.diverged


def test_difference_admm_converges(pair_problem):
    run = distributed_solvers.difference_admm(pair_problem, 1.0, 0.5, node_weight=0.05, forget=0.1, num_iter=500)

    assert run.error[-1] < 1e-4
    np.testing.assert_allclose(run.x, np.repeat(pair_problem["x_ref"][:, None], 2, axis=1), atol=1e-4)


def test_curvature_admm_converges(pair_problem):
    run = distributed_solvers.curvature_admm(pair_problem, num_iter=500, seed=0)

    assert run.error[-1] < 1e-4
    assert run.converged_round is not None


def test_relaxed_admm_on_a_ring(ring_problem):
    run = distributed_solvers.relaxed_admm(ring_problem, 1.0, 0.5, num_iter=1000, retain_history=False)

    assert np.all(np.isfinite(run.error))
    assert run.error[-1] < 1e-2*run.error[0]


#%% DETERMINISM AND ISOLATION

@pytest.mark.parametrize("rule", all_rules(), ids=lambda r: r.name)
def test_runs_are_deterministic(ring_problem, rule):
    config = RunConfig(num_iter=30, seed=11)

    a = distributed_solvers.run(ring_problem, rule, config)
    b = distributed_solvers.run(ring_problem, rule, config)

    np.testing.assert_array_equal(a.error, b.error)
    np.testing.assert_array_equal(a.x, b.x)


@pytest.mark.parametrize("rule", all_rules(), ids=lambda r: r.name)
def test_processing_order_does_not_matter(ring_problem, rule):
    sequential = distributed_solvers.run(ring_problem, rule, RunConfig(num_iter=25, seed=5))
    shuffled = distributed_solvers.run(ring_problem, rule, RunConfig(num_iter=25, seed=5, shuffle=True))

    np.testing.assert_array_equal(sequential.error, shuffled.error)
    for v in sequential.state:
        np.testing.assert_array_equal(sequential.state[v], shuffled.state[v])


def test_curvature_initialization_depends_on_seed(ring_problem):
    a = distributed_solvers.curvature_admm(ring_problem, num_iter=3, seed=1)
    b = distributed_solvers.curvature_admm(ring_problem, num_iter=3, seed=2)

    assert not np.array_equal(a.history["lambda"][..., 0], b.history["lambda"][..., 0])


#%% DIVERGENCE AND ERRORS

def test_divergence_halts_the_run(pair_problem):
    run = distributed_solvers.difference_admm(pair_problem, 1.0, 50.0, num_iter=2000)

    assert run.diverged
    r = run.divergence_round
    assert run.num_rounds == r == run.error.size < 2000
    assert not np.isfinite(run.error[-1])
    assert np.all(np.isfinite(run.error[:-1]))
    assert run.history["x"].shape[-1] == r + 1


def test_divergence_without_halting(pair_problem):
    run = distributed_solvers.difference_admm(pair_problem, 1.0, 50.0, num_iter=400, halt_on_divergence=False)

    assert run.num_rounds == run.error.size == 400
    assert run.diverged and run.divergence_round < 400


def test_singular_local_system():
    f = costs.SeparableLeastSquares([(np.array([[1.0, 0.0]]), [1.0]), (np.array([[1.0, 0.0]]), [2.0])])
    problem = {"f": f, "network": networks.Network.from_edges(2, [(0, 1)]), "x_ref": np.zeros(2)}

    with pytest.raises(solvers.SingularSystem):
        distributed_solvers.relaxed_admm(problem, 0.0, 0.5, num_iter=10)


def test_node_count_mismatch(pair_problem):
    pair_problem["network"] = networks.Network.from_edges(3, [(0, 1), (1, 2)])

    with pytest.raises(networks.InvalidTopology):
        distributed_solvers.relaxed_admm(pair_problem, 1.0, 0.5)


def test_reference_size_mismatch(pair_problem):
    pair_problem["x_ref"] = np.zeros(3)

    with pytest.raises(costs.DimensionMismatch):
        distributed_solvers.relaxed_admm(pair_problem, 1.0, 0.5)


@pytest.mark.parametrize("build", [lambda: RelaxedADMM(1.0, 1.0), lambda: RelaxedADMM(-1.0, 0.5),
                                   lambda: DifferenceADMM(1.0, 0.0), lambda: DifferenceADMM(1.0, 0.5, forget=1.0),
                                   lambda: DifferenceADMM(1.0, 0.5, node_weight=-0.1),
                                   lambda: CurvatureADMM(kappa=0), lambda: CurvatureADMM(init_scale=-1)])
def test_invalid_rule_parameters(build):
    with pytest.raises(ValueError):
        build()


def test_unknown_rule():
    with pytest.raises(ValueError):
        distributed_solvers.make_rule("gossip")


#%% STATE AND OUTPUT

def test_state_shapes_and_history(ring_problem):
    f, net = ring_problem["f"], ring_problem["network"]

    relaxed = distributed_solvers.relaxed_admm(ring_problem, 1.0, 0.5, num_iter=7)
    difference = distributed_solvers.difference_admm(ring_problem, 1.0, 0.2, num_iter=7)

    assert relaxed.state["z"].shape == (f.n, 2*net.num_edges)
    assert difference.state["y"].shape == (f.n, net.num_edges)
    assert difference.state["lambda"].shape == f.shape

    for run in (relaxed, difference):
        for v, traj in run.history.items():
            assert traj.shape == run.state[v].shape + (8,)
            np.testing.assert_array_equal(traj[..., -1], run.state[v])
        np.testing.assert_array_equal(run.history["x"][..., 0], 0)


def test_history_can_be_dropped(ring_problem):
    run = distributed_solvers.relaxed_admm(ring_problem, 1.0, 0.5, num_iter=5, retain_history=False)

    assert run.history is None
    assert run.error.size == 5


def test_missing_reference_is_computed(ring_problem):
    run = distributed_solvers.relaxed_admm(ring_problem, 1.0, 0.5, num_iter=5)

    x_ref = solvers.least_squares(ring_problem["f"])
    np.testing.assert_allclose(run.error[-1], np.max(np.linalg.norm(run.x - x_ref[:, None], axis=0)))


def test_edge_and_node_weights_are_independent(pair_problem):
    rule = distributed_solvers.make_rule("difference", penalty=1.0, edge_weight=0.5, node_weight=0.2)
    assert (rule.edge_weight, rule.node_weight) == (0.5, 0.2)

    a = distributed_solvers.run(pair_problem, rule, RunConfig(num_iter=5))
    b = distributed_solvers.run(pair_problem, DifferenceADMM(1.0, 0.5, node_weight=0.0), RunConfig(num_iter=5))

    assert not np.allclose(a.error, b.error)


def test_curvature_weights(ring_problem):
    rule = CurvatureADMM(kappa=2.0)
    distributed_solvers.run(ring_problem, rule, RunConfig(num_iter=1))

    f, net = ring_problem["f"], ring_problem["network"]
    sigma = [c.curvature for c in f.costs]

    np.testing.assert_allclose(rule.weights, rule.weights.T)
    assert rule.weights[0, 1] == pytest.approx(2.0*min(sigma[0], sigma[1]) / 4)
    assert rule.weights[0, 2] == 0


def test_run_summary(pair_problem):
    run = distributed_solvers.relaxed_admm(pair_problem, 1.0, 0.5, num_iter=3)
    summary = run.to_dict()

    assert summary["rule"] == "relaxed"
    assert summary["num_rounds"] == 3 and len(summary["error"]) == 3
    assert summary["final_error"] == pytest.approx(run.error[-1])
    assert summary["diverged"] is False


def test_error_trace_matches_history(ring_problem):
    run = distributed_solvers.difference_admm(ring_problem, 1.0, 0.2, forget=0.5, num_iter=10)

    x_ref = solvers.least_squares(ring_problem["f"])
    np.testing.assert_allclose(utils.dist(run.history["x"][..., 1:], x_ref), run.error)


def test_curvature_admm_has_no_arcs(ring_problem):
    rule = CurvatureADMM()
    run = distributed_solvers.run(ring_problem, rule, RunConfig(num_iter=2))

    assert rule.num_arcs == 0
    assert set(run.state) == {"x", "lambda", "theta", "xi"}
    assert all(a.size == 0 for a in rule.out_arcs + rule.in_arcs)
