#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Run configuration.
"""

from dataclasses import dataclass, fields
from typing import Optional


@dataclass
class RunConfig:
    """
    Configuration of a distributed run.

    Attributes
    ----------
    num_iter : int
        The maximum number of rounds.
    threshold : float
        The absolute error below which the run is considered converged.
    retain_history : bool
        Whether the full trajectory of the state is stored; otherwise only
        the last round is kept.
    halt_on_divergence : bool
        Whether the run stops after the first round with a non-finite
        error; otherwise it runs all `num_iter` rounds.
    seed : int, optional
        Seed for the random initializations and node orderings.
    shuffle : bool
        Process nodes and arcs in a random order in each phase.
    """

    num_iter: int = 100
    threshold: float = 3e-5
    retain_history: bool = True
    halt_on_divergence: bool = True
    seed: Optional[int] = None
    shuffle: bool = False

    def __post_init__(self):

        if isinstance(self.num_iter, bool) or int(self.num_iter) != self.num_iter or self.num_iter < 1:
            raise ValueError("`num_iter` must be a positive integer, got {}.".format(self.num_iter))
        self.num_iter = int(self.num_iter)

        if not self.threshold >= 0:
            raise ValueError("`threshold` must be non-negative, got {}.".format(self.threshold))

        if self.seed is not None and int(self.seed) != self.seed:
            raise ValueError("`seed` must be an integer or None, got {}.".format(self.seed))

    @classmethod
    def from_kwargs(cls, **kwargs):
        """
        Build a configuration from keyword arguments.

        Raises
        ------
        ValueError
            For unknown options.
        """

        known = {f.name for f in fields(cls)}
        unknown = set(kwargs) - known
        if unknown:
            raise ValueError("Unknown configuration options: {}.".format(", ".join(sorted(unknown))))

        return cls(**kwargs)
