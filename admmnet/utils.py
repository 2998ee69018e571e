#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Utility tools.
"""

import numpy as np
from numpy import linalg as la


#%% PERFORMANCE METRICS

def node_distances(x, r):
    """
    Distance of each node's state from a reference.

    Parameters
    ----------
    x : ndarray
        The nodes' states, with the last dimension indexing the nodes.
    r : ndarray
        The reference, with the shape of a single node's state.

    Returns
    -------
    ndarray
        The Euclidean distances, one for each node.

    Raises
    ------
    ValueError
        For incompatible dimensions of states and reference.
    """

    x, r = np.asarray(x), np.asarray(r)

    if x.shape[:-1] != r.shape:
        raise ValueError("Incompatible shapes of `x` and `r` {}, {}.".format(x.shape, r.shape))

    diff = (x - r[...,np.newaxis]).reshape((-1, x.shape[-1]))

    return la.norm(diff, axis=0)

def dist(s, r):
    """
    Distance of a signal from a reference.

    This function computes, for each time, the maximum over the nodes of the
    distance from the reference `r` of a signal `s` of nodes' states.

    Parameters
    ----------
    s : array_like
        The signal, with the second to last dimension indexing the nodes and
        the last dimension indexing time.
    r : array_like
        The reference, with the shape of a single node's state.

    Returns
    -------
    ndarray
        The distance at each time.
    """

    s = np.asarray(s)

    return np.array([np.max(node_distances(s[...,l], r)) for l in range(s.shape[-1])])

def fpr(s):
    """
    Fixed point residual.

    This function computes the fixed point residual of a signal `s`,
    that is

        .. math:: \\{ \\| s^\\ell - s^{\\ell-1} \\| \\}_{\\ell \\in \\mathbb{N}}.

    Parameters
    ----------
    s : array_like
        The signal, with the last dimension indexing time.

    Returns
    -------
    ndarray
        The fixed point residual.
    """

    s = np.asarray(s)
    d = s[...,1:] - s[...,:-1]

    return la.norm(d.reshape((-1, d.shape[-1])), axis=0)


#%% TRAJECTORIES

def initialize_trajectory(x_0, num_iter):
    """
    Preallocate the trajectory of a variable.

    Parameters
    ----------
    x_0 : ndarray
        The initial value.
    num_iter : int
        The number of rounds to store after the initial one.

    Returns
    -------
    x : ndarray
        Array with shape `x_0.shape + (num_iter+1,)` with the initial value
        in the first slot of the last dimension.
    """

    x = np.zeros(x_0.shape + (num_iter+1,))
    x[...,0] = x_0

    return x

def trim_trajectory(x, num_rounds):
    """
    Keep the initial value and the first `num_rounds` rounds of a trajectory.
    """

    return x[...,:num_rounds+1]
