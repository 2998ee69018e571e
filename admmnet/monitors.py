#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Convergence monitoring.
"""

import logging

import numpy as np

from admmnet import utils

logger = logging.getLogger(__name__)


class ConvergenceMonitor():
    r"""
    Monitor of the distance from a reference solution.

    After each round the monitor computes the error

        .. math:: e^\ell = \max_i \| x_i^\ell - x^* \|

    where :math:`x^*` is the reference, and appends it to the trace. A
    non-finite error marks the run as diverged and requests a halt; the
    first round with error not larger than the threshold is recorded as the
    convergence round (once, regardless of later oscillations).

    Rounds are counted from :math:`1`, so `trace[r-1]` is the error of round
    :math:`r`.

    Attributes
    ----------
    reference : ndarray
        The reference solution.
    threshold : float
        The convergence threshold.
    trace : list
        The errors of the completed rounds.
    converged_round : int or None
        The first round with error below the threshold.
    diverged : bool
        Whether a non-finite error was observed.
    divergence_round : int or None
        The first round with a non-finite error.
    """

    def __init__(self, reference, threshold=3e-5):

        self.reference = np.array(reference, dtype=float)
        self.reference.setflags(write=False)
        self.threshold = threshold

        self.trace = []
        self.converged_round, self.divergence_round = None, None

    @property
    def diverged(self):
        return self.divergence_round is not None

    @property
    def halt(self):
        """
        True once the run has diverged.
        """
        return self.diverged

    @property
    def num_rounds(self):
        return len(self.trace)

    def update(self, x):
        """
        Record the error of a new round.

        Parameters
        ----------
        x : ndarray
            The nodes' primal estimates, with the last dimension indexing the
            nodes.

        Returns
        -------
        float
            The error of the round.
        """

        with np.errstate(invalid="ignore", over="ignore"):
            err = float(np.max(utils.node_distances(x, self.reference)))

        self.trace.append(err)
        r = len(self.trace)

        logger.debug("round %d: error %.3e", r, err)

        if not np.isfinite(err):
            if self.divergence_round is None:
                self.divergence_round = r
                logger.warning("Divergence detected at round %d (error %s)", r, err)

        elif err <= self.threshold and self.converged_round is None:
            self.converged_round = r
            logger.info("Error below %.1e at round %d", self.threshold, r)

        return err
