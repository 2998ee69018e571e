import numpy as np
import pytest

from admmnet import utils


def test_node_distances():
    x = np.array([[0.0, 3.0, 1.0], [0.0, 4.0, 1.0]])

    np.testing.assert_allclose(utils.node_distances(x, np.zeros(2)), [0, 5, np.sqrt(2)])

    with pytest.raises(ValueError):
        utils.node_distances(x, np.zeros(3))


def test_dist_over_time():
    s = np.zeros((2, 2, 3))
    s[0, 1, 1], s[1, 0, 2] = 2.0, -1.0

    np.testing.assert_allclose(utils.dist(s, np.zeros(2)), [0, 2, 1])


def test_fpr():
    s = np.stack([np.zeros(2), np.ones(2), np.ones(2)], axis=-1)

    np.testing.assert_allclose(utils.fpr(s), [np.sqrt(2), 0])


def test_trajectory_helpers():
    x = utils.initialize_trajectory(np.ones((2, 3)), 4)

    assert x.shape == (2, 3, 5)
    np.testing.assert_array_equal(x[..., 0], 1)
    np.testing.assert_array_equal(x[..., 1:], 0)

    assert utils.trim_trajectory(x, 2).shape == (2, 3, 3)
