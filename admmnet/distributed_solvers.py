#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Distributed solvers.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from admmnet import costs, networks, solvers, utils
from admmnet.config import RunConfig
from admmnet.monitors import ConvergenceMonitor

logger = logging.getLogger(__name__)


#%% UPDATE RULES

class UpdateRule():
    """
    Template for the update equations of a distributed solver.

    An update rule defines the state of the nodes (and arcs) and how it
    evolves in one synchronous round. The round is driven by `run` in three
    phases, each of them completed by all nodes (or arcs) before the next
    one starts:

        1. `primal_update` for each node, which solves the local problem
           with the dual input returned by `dual_input` and then calls
           `send` to transmit packets to the neighbors;
        2. `arc_update` for each arc, if the rule has arc variables;
        3. `node_update` for each node, if the rule has node variables.

    All methods read the previous round's state `old` and write the new
    round's state `new`; both are dictionaries of arrays whose last
    dimension indexes the nodes (or the arcs for `arc_variables`).

    Attributes
    ----------
    name : str
        The name of the rule.
    mode : str or None
        The message topology used, "half" or "full", or None for rules
        without arc variables.
    arc_variables : tuple
        The names of the variables held by the arcs.
    node_variables : tuple
        The names of the dual variables held by the nodes.
    penalty : float
        The penalty parameter :math:`\\rho`.
    """

    name = None
    mode = "full"
    arc_variables = ()
    node_variables = ()

    def __init__(self, penalty):

        if not penalty >= 0:
            raise ValueError("The penalty must be non-negative, got {}.".format(penalty))

        self.penalty = penalty

    def initialize(self, f, net, ran):
        """
        Prepare the rule for a run and return the initial state.

        The method builds the message topology (if any) and factorizes the
        local systems, whose weights are :math:`\\rho d_i` with :math:`d_i`
        the degree of node :math:`i`.

        Parameters
        ----------
        f : costs.SeparableLeastSquares
            The nodes' costs.
        net : networks.Network
            The network.
        ran : numpy.random.Generator
            The random generator for stochastic initializations.

        Returns
        -------
        dict
            The initial state.
        """

        self.net = net
        if self.mode is None:
            empty = np.zeros(0, dtype=int)
            self.tails, self.heads, self.index = empty, empty, -np.ones((net.N, net.N), dtype=int)
        else:
            self.tails, self.heads, self.index = net.arcs(self.mode)
        self.num_arcs = self.tails.size

        # outgoing and incoming arcs of each node
        self.out_arcs = [np.flatnonzero(self.tails == i) for i in range(net.N)]
        self.in_arcs = [np.flatnonzero(self.heads == i) for i in range(net.N)]

        self.solvers = [solvers.RegularizedSolver(f.costs[i], self.penalty*net.degrees[i]) for i in range(net.N)]

        state = {"x": np.zeros(f.shape)}
        for v in self.arc_variables: state[v] = np.zeros((f.n, self.num_arcs))
        for v in self.node_variables: state[v] = np.zeros(f.shape)

        return state

    def dual_input(self, old, i):
        """
        The dual input of node `i` for the local solve. *Implement*.
        """

        raise NotImplementedError()

    def primal_update(self, old, new, i):

        new["x"][...,i] = self.solvers[i].solve(self.dual_input(old, i))
        self.send(old, new, i)

    def send(self, old, new, i):
        """
        Transmissions of node `i` after its local solve.
        """
        pass

    def arc_update(self, old, new, e):
        pass

    def node_update(self, old, new, i):
        pass


class RelaxedADMM(UpdateRule):
    r"""
    Distributed relaxed alternating direction method of multipliers (ADMM).

    The algorithm is characterized by the updates

    .. math:: x_i^{\ell+1} = \operatorname{arg\,min}_x \left\{ f_i(x)
              + \frac{\rho d_i}{2} \| x \|^2
              - \langle \textstyle\sum_{j \in \mathcal{N}_i} z_{ij}^\ell, x \rangle \right\}

    .. math:: z_{ij}^{\ell+1} = (1-\alpha) z_{ij}^\ell - \alpha z_{ji}^\ell
                              + 2 \alpha \rho x_j^{\ell+1}

    for :math:`\ell = 0, 1, \ldots`, where :math:`d_i` is node :math:`i`'s
    degree, :math:`\rho` and :math:`\alpha` are the penalty and relaxation
    parameters. There is one variable for each arc of the full digraph.
    After the primal update node :math:`j` transmits
    :math:`-z_{ji}^\ell + 2 \rho x_j^{\ell+1}` to each neighbor :math:`i`.

    References
    ----------
    .. [#] N. Bastianello, R. Carli, L. Schenato, and M. Todescato,
           "Asynchronous Distributed Optimization over Lossy Networks via
           Relaxed ADMM: Stability and Linear Convergence," IEEE Transactions
           on Automatic Control.
    """

    name = "relaxed"
    mode = "full"
    arc_variables = ("z",)

    def __init__(self, penalty, rel):
        """
        Parameters
        ----------
        penalty : float
            The penalty parameter :math:`\\rho`.
        rel : float
            The relaxation parameter :math:`\\alpha` in :math:`(0,1)`.
        """

        super().__init__(penalty)

        if not 0 < rel < 1:
            raise ValueError("The relaxation must be in (0,1), got {}.".format(rel))

        self.rel = rel

    def dual_input(self, old, i):

        return np.sum(old["z"][...,self.out_arcs[i]], axis=-1)

    def send(self, old, new, i):

        for j in self.net.neighbors[i]:
            self.net.send(i, j, -old["z"][...,self.index[i,j]] + 2*self.penalty*new["x"][...,i], tag="z")

    def arc_update(self, old, new, e):

        i, j = self.tails[e], self.heads[e]

        new["z"][...,e] = (1 - self.rel)*old["z"][...,e] + self.rel*self.net.receive(i, j, tag="z")


class DifferenceADMM(UpdateRule):
    r"""
    Distributed ADMM with edge differences and dual forgetting.

    Each edge :math:`(i,j)`, :math:`i < j`, holds a variable :math:`y_{ij}`
    and each node a dual variable :math:`\lambda_i`. The updates are

    .. math:: x_i^{\ell+1} = (\pmb{A}_i^\top \pmb{A}_i + \rho d_i \pmb{I})^{-1}
              (\pmb{A}_i^\top \pmb{b}_i + \lambda_i^\ell)

    .. math:: y_{ij}^{\ell+1} = y_{ij}^\ell + w (x_j^{\ell+1} - x_i^{\ell+1})

    .. math:: \lambda_i^{\ell+1} = \gamma \lambda_i^\ell + (1 - \gamma) \Big(
              \rho d_i x_i^{\ell+1} - w_* \sum_{j \in \mathcal{N}_i} (x_i^{\ell+1} - x_j^{\ell+1})
              + \sum_{(i,j)} y_{ij}^{\ell+1} - \sum_{(j,i)} y_{ji}^{\ell+1} \Big)

    where :math:`w` is the edge weight, :math:`w_*` the (independent) node
    weight and :math:`\gamma \in [0,1)` the forgetting factor.
    """

    name = "difference"
    mode = "half"
    arc_variables = ("y",)
    node_variables = ("lambda",)

    def __init__(self, penalty, edge_weight, node_weight=0, forget=0):
        """
        Parameters
        ----------
        penalty : float
            The penalty parameter :math:`\\rho`.
        edge_weight : float
            The positive edge weight :math:`w`.
        node_weight : float, optional
            The non-negative node weight :math:`w_*`.
        forget : float, optional
            The forgetting factor :math:`\\gamma` in :math:`[0,1)`.
        """

        super().__init__(penalty)

        if not edge_weight > 0:
            raise ValueError("The edge weight must be positive, got {}.".format(edge_weight))
        if not node_weight >= 0:
            raise ValueError("The node weight must be non-negative, got {}.".format(node_weight))
        if not 0 <= forget < 1:
            raise ValueError("The forgetting factor must be in [0,1), got {}.".format(forget))

        self.edge_weight, self.node_weight, self.forget = edge_weight, node_weight, forget

    def dual_input(self, old, i):

        return old["lambda"][...,i]

    def send(self, old, new, i):

        self.net.broadcast(i, new["x"][...,i], tag="x")

    def arc_update(self, old, new, e):

        i, j = self.tails[e], self.heads[e]

        x_j = self.net.receive(i, j, destructive=False, tag="x")
        new["y"][...,e] = old["y"][...,e] + self.edge_weight*(x_j - new["x"][...,i])

        # the head needs the edge value for its dual update
        self.net.send(i, j, new["y"][...,e], tag="y")

    def node_update(self, old, new, i):

        x_i = new["x"][...,i]

        disagreement = sum([x_i - self.net.receive(i, j, destructive=False, tag="x") for j in self.net.neighbors[i]])
        outgoing = np.sum(new["y"][...,self.out_arcs[i]], axis=-1)
        incoming = sum([self.net.receive(i, self.tails[e], tag="y") for e in self.in_arcs[i]])

        local = self.penalty*self.net.degrees[i]*x_i - self.node_weight*disagreement + outgoing - incoming
        new["lambda"][...,i] = self.forget*old["lambda"][...,i] + (1 - self.forget)*local


class CurvatureADMM(UpdateRule):
    r"""
    Distributed solver with curvature-based consensus weights.

    The nodes hold three variables :math:`\lambda_i, \theta_i, \xi_i` and no
    arc variables. The consensus weights are computed once as

    .. math:: w_{ij} = \kappa \frac{\min \{ \sigma_i, \sigma_j \}}{d_i + d_j}

    for each edge, with :math:`\sigma_i` the smallest eigenvalue of
    :math:`\pmb{A}_i^\top \pmb{A}_i`. The updates are

    .. math:: \begin{align}
              x_i^{\ell+1} &= (\pmb{A}_i^\top \pmb{A}_i + \rho d_i \pmb{I})^{-1}
                              (\pmb{A}_i^\top \pmb{b}_i + \lambda_i^\ell) \\
              \lambda_i^{\ell+1} &= \xi_i^\ell - \sum_{j \in \mathcal{N}_i} w_{ji} (\theta_i^\ell - \theta_j^\ell) \\
              \theta_i^{\ell+1} &= \theta_i^\ell + x_i^{\ell+1} \\
              \xi_i^{\ell+1} &= \rho d_i x_i^{\ell+1}
              \end{align}

    With the default :math:`\rho = \kappa = 1` this is
    :math:`\xi_i = d_i x_i`. The :math:`\lambda` variables start from a small
    random perturbation.
    """

    name = "curvature"
    mode = None
    node_variables = ("lambda", "theta", "xi")

    def __init__(self, penalty=1, kappa=1, init_scale=1e-3):
        """
        Parameters
        ----------
        penalty : float, optional
            The penalty parameter :math:`\\rho`.
        kappa : float, optional
            The positive scaling :math:`\\kappa` of the consensus weights.
        init_scale : float, optional
            The standard deviation of the initial :math:`\\lambda`.
        """

        super().__init__(penalty)

        if not kappa > 0:
            raise ValueError("`kappa` must be positive, got {}.".format(kappa))
        if not init_scale >= 0:
            raise ValueError("`init_scale` must be non-negative, got {}.".format(init_scale))

        self.kappa, self.init_scale = kappa, init_scale

    def initialize(self, f, net, ran):

        state = super().initialize(f, net, ran)

        curvatures = [c.curvature for c in f.costs]

        self.weights = np.zeros((net.N, net.N))
        for i, j in net.edges:
            self.weights[i,j] = self.kappa*min(curvatures[i], curvatures[j]) / (net.degrees[i] + net.degrees[j])
            self.weights[j,i] = self.weights[i,j]

        state["lambda"] = self.init_scale*ran.standard_normal(f.shape)

        return state

    def dual_input(self, old, i):

        return old["lambda"][...,i]

    def send(self, old, new, i):

        self.net.broadcast(i, old["theta"][...,i], tag="theta")

    def node_update(self, old, new, i):

        theta_i = old["theta"][...,i]

        mixing = sum([self.weights[j,i]*(theta_i - self.net.receive(i, j, tag="theta")) for j in self.net.neighbors[i]])

        new["lambda"][...,i] = old["xi"][...,i] - mixing
        new["theta"][...,i] = theta_i + new["x"][...,i]
        new["xi"][...,i] = self.penalty*self.net.degrees[i]*new["x"][...,i]


RULES = {r.name: r for r in (RelaxedADMM, DifferenceADMM, CurvatureADMM)}

def make_rule(name, **params):
    """
    Build an update rule from its name ("relaxed", "difference" or
    "curvature") and parameters.
    """

    if name not in RULES:
        raise ValueError("Unknown rule '{}', available: {}.".format(name, ", ".join(RULES)))

    return RULES[name](**params)


#%% DRIVER

@dataclass
class Run:
    """
    Outcome of a distributed run.

    Attributes
    ----------
    rule : str
        The name of the update rule.
    x : ndarray
        The nodes' final primal estimates, shape :math:`(n, N)`.
    state : dict
        The final state of all variables.
    error : ndarray
        The error of each completed round.
    num_rounds : int
        The number of completed rounds.
    converged_round : int or None
        The first round with error below the threshold.
    divergence_round : int or None
        The first round with a non-finite error.
    history : dict or None
        The trajectory of each variable (last dimension indexing the rounds
        :math:`0, \\ldots,` `num_rounds`), if retained.
    """

    rule: str
    x: np.ndarray
    state: dict
    error: np.ndarray
    num_rounds: int
    converged_round: Optional[int] = None
    divergence_round: Optional[int] = None
    history: Optional[dict] = None

    @property
    def diverged(self):
        return self.divergence_round is not None

    def to_dict(self):
        """
        Summary of the run with plain Python types.
        """

        return {"rule": self.rule, "num_rounds": self.num_rounds,
                "converged_round": self.converged_round, "diverged": self.diverged,
                "divergence_round": self.divergence_round,
                "final_error": float(self.error[-1]) if self.num_rounds else None,
                "error": [float(e) for e in self.error]}


def run(problem, rule, config=None):
    """
    Run a distributed solver.

    The nodes perform synchronous rounds of the given update rule; after
    each round the maximum distance of the nodes' estimates from the
    reference solution is recorded. The run stops after `config.num_iter`
    rounds or, if `config.halt_on_divergence`, after the first round with a
    non-finite error.

    Parameters
    ----------
    problem : dict
        A dictionary containing the costs `f` (a
        `costs.SeparableLeastSquares`), the `network`, and optionally the
        reference solution `x_ref`. If the reference is missing it is
        computed with `solvers.least_squares`.
    rule : UpdateRule
        The update rule.
    config : RunConfig, optional
        The run configuration, defaults to `RunConfig()`.

    Returns
    -------
    Run
        The outcome of the run.

    Raises
    ------
    networks.InvalidTopology
        If the number of nodes and of local costs differ.
    costs.DimensionMismatch
        If the reference has the wrong size.
    solvers.SingularSystem
        If a local system cannot be solved.
    """

    config = config if config is not None else RunConfig()

    # unpack problem data
    f, net = problem["f"], problem["network"]

    if f.N != net.N:
        raise networks.InvalidTopology("The network has {} nodes but {} local costs are given.".format(net.N, f.N))

    x_ref = problem.get("x_ref", None)
    if x_ref is None:
        x_ref = solvers.least_squares(f)
        logger.info("Reference solution computed from the stacked data")
    x_ref = np.array(x_ref, dtype=float)
    if x_ref.size != f.n or x_ref.ndim > 2:
        raise costs.DimensionMismatch("The reference must have {} elements, got shape {}.".format(f.n, x_ref.shape))
    x_ref = x_ref.reshape((f.n,))

    if not networks.is_connected(net.adj_mat):
        logger.warning("The network is not connected, the nodes cannot reach consensus")
    isolated = [i for i in range(net.N) if net.degrees[i] == 0]
    if isolated:
        logger.warning("Isolated nodes %s solve their local problem unregularized", isolated)

    # independent streams for initialization and orderings
    init_seed, order_seed = np.random.SeedSequence(config.seed).spawn(2)
    init_ran, order_ran = np.random.default_rng(init_seed), np.random.default_rng(order_seed)

    def order(num):
        return order_ran.permutation(num) if config.shuffle else range(num)

    state = rule.initialize(f, net, init_ran)
    monitor = ConvergenceMonitor(x_ref, config.threshold)

    history = {v: utils.initialize_trajectory(state[v], config.num_iter) for v in state} \
              if config.retain_history else None

    logger.info("Running '%s' on %d nodes, %d arcs, up to %d rounds", rule.name, net.N, rule.num_arcs, config.num_iter)

    net.flush()

    for l in range(config.num_iter):

        new = {v: np.copy(state[v]) for v in state}

        with np.errstate(over="ignore", invalid="ignore"):

            # local solves and transmissions
            for i in order(net.N): rule.primal_update(state, new, i)

            # arcs update
            if rule.arc_variables:
                for e in order(rule.num_arcs): rule.arc_update(state, new, e)

            # nodes update
            if rule.node_variables:
                for i in order(net.N): rule.node_update(state, new, i)

        net.flush()
        state = new

        monitor.update(state["x"])
        if history is not None:
            for v in history: history[v][...,l+1] = state[v]

        if monitor.halt and config.halt_on_divergence: break

    if history is not None:
        history = {v: utils.trim_trajectory(history[v], monitor.num_rounds) for v in history}

    logger.info("'%s' completed %d rounds, final error %.3e", rule.name, monitor.num_rounds, monitor.trace[-1])

    return Run(rule=rule.name, x=state["x"], state=state, error=np.array(monitor.trace),
               num_rounds=monitor.num_rounds, converged_round=monitor.converged_round,
               divergence_round=monitor.divergence_round, history=history)


#%% SOLVERS

def relaxed_admm(problem, penalty, rel, num_iter=100, **kwargs):
    """
    Distributed relaxed ADMM, see `RelaxedADMM`.

    Parameters
    ----------
    problem : dict
        The problem dictionary, see `run`.
    penalty : float
        The penalty parameter.
    rel : float
        The relaxation parameter in :math:`(0,1)`.
    num_iter : int, optional
        The number of rounds.
    **kwargs
        Other `RunConfig` options.

    Returns
    -------
    Run
        The outcome of the run.
    """

    return run(problem, RelaxedADMM(penalty, rel), RunConfig.from_kwargs(num_iter=num_iter, **kwargs))

def difference_admm(problem, penalty, edge_weight, node_weight=0, forget=0, num_iter=100, **kwargs):
    """
    Distributed ADMM with edge differences, see `DifferenceADMM`.
    """

    rule = DifferenceADMM(penalty, edge_weight, node_weight=node_weight, forget=forget)

    return run(problem, rule, RunConfig.from_kwargs(num_iter=num_iter, **kwargs))

def curvature_admm(problem, penalty=1, kappa=1, num_iter=100, **kwargs):
    """
    Distributed solver with curvature-based weights, see `CurvatureADMM`.
    """

    init_scale = kwargs.pop("init_scale", 1e-3)
    rule = CurvatureADMM(penalty, kappa=kappa, init_scale=init_scale)

    return run(problem, rule, RunConfig.from_kwargs(num_iter=num_iter, **kwargs))
