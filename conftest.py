import numpy as np
import pytest

from admmnet import costs, networks


@pytest.fixture
def pair_problem():
    """Two nodes, one edge, identity data: the solution is the mean of the observations."""

    b_0, b_1 = np.array([1.0, 2.0]), np.array([3.0, -1.0])
    f = costs.SeparableLeastSquares([(np.eye(2), b_0), (np.eye(2), b_1)])
    net = networks.Network.from_edges(2, [(0, 1)])

    return {"f": f, "network": net, "x_ref": (b_0 + b_1) / 2}


@pytest.fixture
def ring_problem():
    """Five nodes on a ring with intercept-augmented random regression data."""

    ran = np.random.default_rng(7)
    N, n = 5, 3
    x_true = ran.standard_normal(n)

    data = []
    for i in range(N):
        A = np.hstack((np.ones((4, 1)), ran.standard_normal((4, n-1))))
        data.append((A, A.dot(x_true) + 0.01*ran.standard_normal(4)))

    f = costs.SeparableLeastSquares(data)
    net = networks.Network.from_edges(N, [(i, (i+1) % N) for i in range(N)])

    return {"f": f, "network": net}
