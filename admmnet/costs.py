#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Least-squares costs held by the nodes.
"""

import numpy as np
from numpy import linalg as la


class DimensionMismatch(ValueError):
    """
    Incompatible dimensions of the problem data.
    """


#%% LOCAL COSTS

class LeastSquares():
    r"""
    Cost for (local) linear regression.

    The cost is defined as

        .. math:: f(\pmb{x}) = \frac{1}{2} \| \pmb{A} \pmb{x} - \pmb{b} \|^2

    where each row of :math:`\pmb{A} \in \mathbb{R}^{m \times n}` and element
    of :math:`\pmb{b} \in \mathbb{R}^m` represent a data point. The data are
    stored read-only, together with the quantities needed by the local
    solves: the Gram matrix :math:`\pmb{A}^\top \pmb{A}` and the moment
    :math:`\pmb{A}^\top \pmb{b}`.

    Attributes
    ----------
    A : ndarray
        The data matrix.
    b : ndarray
        The observations.
    m : int
        The number of data points.
    n : int
        The size of the unknown.
    gram : ndarray
        The matrix :math:`\pmb{A}^\top \pmb{A}`.
    moment : ndarray
        The vector :math:`\pmb{A}^\top \pmb{b}`.
    """

    def __init__(self, A, b):
        """
        Class constructor.

        Parameters
        ----------
        A : array_like
            The data matrix, a single row can be given as a 1-D array.
        b : array_like
            The observations, either a 1-D array or a column vector.

        Raises
        ------
        DimensionMismatch
            If `A` and `b` are not compatible.
        """

        A, b = np.array(A, dtype=float), np.array(b, dtype=float)

        if A.ndim == 1: A = A.reshape((1,-1))
        if A.ndim != 2 or A.shape[1] < 1:
            raise DimensionMismatch("The data matrix must be 2-D, got shape {}.".format(A.shape))

        # accept column vectors and scalars
        if b.ndim == 2 and b.shape[1] == 1: b = b.ravel()
        b = np.atleast_1d(b)
        if b.ndim != 1 or b.size != A.shape[0]:
            raise DimensionMismatch("The observations must be a vector of {} elements, got shape {}.".format(A.shape[0], b.shape))

        self.m, self.n = A.shape
        self.A, self.b = A, b

        self.gram, self.moment = A.T.dot(A), A.T.dot(b)

        for v in (self.A, self.b, self.gram, self.moment): v.setflags(write=False)

    def function(self, x):

        x = np.reshape(x, (self.n,))

        return 0.5*la.norm(self.A.dot(x) - self.b)**2

    def gradient(self, x):

        x = np.reshape(x, (self.n,))

        return self.gram.dot(x) - self.moment

    @property
    def curvature(self):
        """
        Smallest eigenvalue of :math:`\\pmb{A}^\\top \\pmb{A}`.
        """

        return float(max(la.eigvalsh(self.gram)[0], 0))


# -------- SEPARABLE COSTS

class SeparableLeastSquares():
    r"""
    Separable least-squares cost.

    Given the local costs :math:`f_i`, :math:`i = 0, \ldots, N-1`, this class
    represents the separable cost

        .. math:: F(\pmb{x}) = \sum_{i = 0}^{N-1} f_i(x_i)

    where the local unknowns :math:`x_i \in \mathbb{R}^n` share the same size.
    The argument of `function` and `gradient` is an array of shape
    :math:`(n, N)`, with the last dimension indexing the nodes.

    Attributes
    ----------
    costs : list
        The local costs.
    N : int
        The number of local costs (nodes).
    n : int
        The size of the local unknowns.
    shape : tuple
        The shape :math:`(n, N)` of the stacked unknowns.
    """

    def __init__(self, costs):
        """
        Class constructor.

        Parameters
        ----------
        costs : list
            The local costs, given either as `LeastSquares` objects or as
            `(A, b)` pairs.

        Raises
        ------
        DimensionMismatch
            If the local costs do not share the same unknown size, or no cost
            is given.
        """

        self.costs = [c if isinstance(c, LeastSquares) else LeastSquares(*c) for c in costs]

        if len(self.costs) == 0:
            raise DimensionMismatch("At least one local cost is required.")

        sizes = {c.n for c in self.costs}
        if len(sizes) > 1:
            raise DimensionMismatch("The local costs have different numbers of columns: {}.".format(
                [c.n for c in self.costs]))

        self.N, self.n = len(self.costs), self.costs[0].n
        self.shape = (self.n, self.N)

    def _check_input(self, x):

        x = np.asarray(x)
        if x.shape != self.shape:
            raise DimensionMismatch("Expected an array of shape {}, got {}.".format(self.shape, x.shape))
        return x

    def function(self, x, i=None):

        if i is not None: return self.costs[i].function(x)

        x = self._check_input(x)
        return sum([self.costs[i].function(x[...,i]) for i in range(self.N)])

    def gradient(self, x, i=None):

        if i is not None: return self.costs[i].gradient(x)

        x = self._check_input(x)
        return np.stack([self.costs[i].gradient(x[...,i]) for i in range(self.N)], axis=-1)

    def global_function(self, x):
        """
        Evaluate the cost of the stacked problem.

        This is the cost :math:`\\sum_i f_i(x)` with all nodes sharing the
        same argument :math:`x \\in \\mathbb{R}^n`.
        """

        return sum([c.function(x) for c in self.costs])

    def stacked(self):
        """
        Stack the local data.

        Returns
        -------
        A : ndarray
            The local data matrices stacked vertically.
        b : ndarray
            The local observations concatenated.
        """

        return np.vstack([c.A for c in self.costs]), np.concatenate([c.b for c in self.costs])
