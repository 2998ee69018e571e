#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Distributed least-squares with the three update rules.
"""

import logging

import numpy as np
from numpy.random import default_rng
import networkx as nx
import matplotlib.pyplot as plt

ran = default_rng(42)

from admmnet import costs, networks, distributed_solvers
from admmnet.config import RunConfig

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


#%% GENERATE PROBLEM

# -------- create the network
N = 20

graph = nx.erdos_renyi_graph(N, 0.25, seed=42)
while not nx.is_connected(graph):
    graph = nx.erdos_renyi_graph(N, 0.25, seed=int(ran.integers(10**6)))
# graph = nx.barabasi_albert_graph(N, 2, seed=42)

net = networks.Network.from_edges(graph.number_of_nodes(), graph.edges())

# -------- create nodes' data
n = 5 # unknown size, including the intercept
x_true = ran.standard_normal(n)

sd = 1e-2 # noise standard deviation

data = []
for i in range(N):

    m = ran.integers(n, 3*n) # local num. of data points
    A = np.hstack((np.ones((m,1)), ran.standard_normal((m, n-1))))
    b = A.dot(x_true) + sd*ran.standard_normal(m)

    data.append((A, b))

f = costs.SeparableLeastSquares(data)

problem = {"f":f, "network":net}

# -------- solver parameters
config = RunConfig(num_iter=500, seed=1)

rules = {"Relaxed ADMM": distributed_solvers.RelaxedADMM(1, 0.5),
         "Difference ADMM": distributed_solvers.DifferenceADMM(1, 0.2, node_weight=0.01, forget=0.1),
         "Curvature ADMM": distributed_solvers.CurvatureADMM()}


#%% TEST SOLVERS

runs = {}
for label, rule in rules.items():

    runs[label] = distributed_solvers.run(problem, rule, config)

    print(label, runs[label].to_dict()["converged_round"])


#%% PLOT RESULTS

fontsize = 18

plt.figure()

for (label, r), marker in zip(runs.items(), ["s", "v", "o"]):
    plt.semilogy(np.arange(1, r.num_rounds+1), r.error, label=label, marker=marker, markevery=[0])

plt.axhline(config.threshold, color="k", linestyle="--", linewidth=1)

plt.legend(fontsize=fontsize-3)
plt.xlabel("Round", fontsize=fontsize)
plt.ylabel("Max. distance from solution", fontsize=fontsize)

plt.grid()

plt.show()
# plt.savefig("distributed-least-squares.pdf", bbox_inches="tight")
