#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Centralized and local solvers.
"""

import logging

import numpy as np
from numpy import linalg as la
from scipy.linalg import cho_factor, cho_solve

from admmnet import costs

logger = logging.getLogger(__name__)


class SingularSystem(la.LinAlgError):
    """
    The local regularized system cannot be solved.
    """


#%% LOCAL SOLVES

class RegularizedSolver():
    r"""
    Solver of the regularized normal equations.

    Given a local cost :math:`f(x) = \| \pmb{A} x - \pmb{b} \|^2 / 2` and a
    weight :math:`\rho \geq 0`, the solver computes

        .. math:: x = (\pmb{A}^\top \pmb{A} + \rho \pmb{I})^{-1}
                      (\pmb{A}^\top \pmb{b} + d)

    for a given dual input :math:`d`, that is the minimizer of
    :math:`f(x) + \rho \| x \|^2 / 2 - \langle d, x \rangle`. The system
    matrix is factorized once (Cholesky) in the constructor, and the
    factorization is reused by each call to `solve`.

    Attributes
    ----------
    cost : costs.LeastSquares
        The local cost.
    weight : float
        The regularization weight.
    """

    def __init__(self, cost, weight):
        """
        Class constructor.

        Parameters
        ----------
        cost : costs.LeastSquares
            The local cost.
        weight : float
            The non-negative regularization weight.

        Raises
        ------
        ValueError
            For a negative weight.
        SingularSystem
            If the regularized system matrix is (numerically) singular.
        """

        if weight < 0:
            raise ValueError("The regularization weight must be non-negative, got {}.".format(weight))

        self.cost, self.weight = cost, float(weight)

        mat = cost.gram + self.weight*np.eye(cost.n)

        try:
            self._factor = cho_factor(mat)
        except la.LinAlgError as e:
            raise SingularSystem("The local system with weight {} is not positive definite.".format(self.weight)) from e

        # reject factors with negligible pivots
        pivots = np.abs(np.diag(self._factor[0]))**2
        if pivots.min() <= cost.n*np.finfo(float).eps*pivots.max():
            raise SingularSystem("The local system with weight {} is singular.".format(self.weight))

    def solve(self, d=0):
        """
        Solve the regularized normal equations.

        Parameters
        ----------
        d : array_like, optional
            The dual input, a vector of size :math:`n` or a scalar.

        Returns
        -------
        ndarray
            The solution :math:`x`.

        Raises
        ------
        costs.DimensionMismatch
            If `d` has the wrong size.
        """

        d = np.asarray(d, dtype=float)
        if d.ndim > 0 and d.shape != (self.cost.n,):
            raise costs.DimensionMismatch("The dual input must have shape ({},), got {}.".format(self.cost.n, d.shape))

        return cho_solve(self._factor, self.cost.moment + d, check_finite=False)

    def residual(self, x, d=0):
        """
        Relative residual of the regularized normal equations in `x`.
        """

        rhs = self.cost.moment + d
        r = self.cost.gram.dot(x) + self.weight*x - rhs

        return la.norm(r) / max(la.norm(rhs), np.finfo(float).tiny)


#%% CENTRALIZED SOLVES

def least_squares(f):
    """
    Solve the stacked least-squares problem.

    The function computes the minimizer of :math:`\\sum_i \\| A_i x - b_i \\|^2`
    by stacking the nodes' data, and it is used as reference to measure the
    error of the distributed solvers.

    Parameters
    ----------
    f : costs.SeparableLeastSquares
        The nodes' costs.

    Returns
    -------
    x : ndarray
        The (minimum norm) solution of the stacked problem.
    """

    A, b = f.stacked()

    x, _, rank, _ = la.lstsq(A, b, rcond=None)

    if rank < f.n:
        logger.warning("Stacked data matrix is rank deficient (%d < %d), returning the minimum norm solution", rank, f.n)

    return x
