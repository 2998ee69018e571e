#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Network tools.
"""

import numpy as np


class InvalidTopology(ValueError):
    """
    Malformed graph given as input.
    """


#%% NETWORK CLASS

class Network():
    """
    Representation of an undirected network.

    The class implements a static, undirected network defined from the
    adjacency matrix (or from a list of edges, see `from_edges`). The class
    provides node-to-node and broadcast communications, and the directed
    message topologies (half or full digraph) used by the distributed
    solvers.

    Transmissions are implemented via the `buffer` attribute of the network:
    the sender stores the packet to be transmitted in the `buffer` dictionary,
    specifying the recipient, which can then access the packet.

    By convention, the nodes in the network are indexed from :math:`0` to
    :math:`N-1`, where :math:`N` is the total number of nodes.

    Attributes
    ----------
    adj_mat : ndarray
        The adjacency matrix of the network.
    N : int
        The number of nodes in the network.
    edges : list
        The undirected edges :math:`(i,j)`, :math:`i < j`, in enumeration
        order.
    num_edges : int
        The number of undirected edges.
    neighbors : list
        A list whose :math:`i`-th element is a list of node :math:`i`'s
        neighors.
    degrees : list
        The number of neighbors of each node.
    buffer : dict
        The dictionary used for node-to-node transmissions.
    """

    def __init__(self, adj_mat, edges=None):
        """
        Class constructor.

        Parameters
        ----------
        adj_mat : array_like
            The adjacency matrix describing the connectivity pattern of the
            network.
        edges : list, optional
            The enumeration order of the undirected edges, which must list
            each edge of `adj_mat` exactly once (in either orientation). If
            not given, the edges are enumerated row by row from the upper
            triangular part of `adj_mat`.

        Raises
        ------
        InvalidTopology
            If the matrix is not square and symmetric, or it has self-loops,
            or `edges` does not match it.
        """

        adj_mat = np.array(adj_mat, dtype=float)

        # check the adjacency matrix
        if adj_mat.ndim != 2 or adj_mat.shape[0] != adj_mat.shape[1]:
            raise InvalidTopology("The adjacency matrix must be square, got shape {}.".format(adj_mat.shape))
        if adj_mat.shape[0] < 1:
            raise InvalidTopology("The network must have at least one node.")
        if np.any(np.diag(adj_mat)):
            raise InvalidTopology("Self-loops are not allowed (nodes {}).".format(list(np.flatnonzero(np.diag(adj_mat)))))
        if not np.array_equal(adj_mat != 0, (adj_mat != 0).T):
            raise InvalidTopology("The adjacency matrix must be symmetric.")

        # store network attributes
        self.adj_mat, self.N = (adj_mat != 0).astype(float), adj_mat.shape[0]

        # undirected edges in enumeration order
        upper = [(int(i), int(j)) for i in range(self.N) for j in np.flatnonzero(self.adj_mat[i,i+1:]) + i+1]
        if edges is None:
            self.edges = upper
        else:
            self.edges = [(min(int(i), int(j)), max(int(i), int(j))) for i, j in edges]

            # the enumeration must list each edge of the matrix exactly once
            if len(set(self.edges)) != len(self.edges):
                raise InvalidTopology("The edge enumeration has repeated edges.")
            if set(self.edges) != set(upper):
                raise InvalidTopology("The edge enumeration does not match the adjacency matrix "
                                      "(missing {}, extra {}).".format(sorted(set(upper) - set(self.edges)),
                                                                      sorted(set(self.edges) - set(upper))))
        self.num_edges = len(self.edges)

        # list of neighbors for each node
        self.neighbors = [[int(j) for j in np.flatnonzero(self.adj_mat[i,:])] for i in range(self.N)]
        self.degrees = [len(n) for n in self.neighbors]

        # cached message topologies
        self._arcs = {}

        # buffer for node-to-node transmissions
        self.buffer = {}

    @classmethod
    def from_edges(cls, N, edges):
        """
        Build a network from the number of nodes and a list of edges.

        The edges keep the order in which they are first listed, which is
        the order used to index the arcs. Repeated edges (in either
        orientation) are counted once.

        Parameters
        ----------
        N : int
            The number of nodes.
        edges : iterable
            The undirected edges as pairs of node indices.

        Returns
        -------
        Network
            The network.

        Raises
        ------
        InvalidTopology
            For self-loops or nodes outside :math:`0, \\ldots, N-1`.
        """

        if N < 1 or int(N) != N:
            raise InvalidTopology("The number of nodes must be a positive integer.")
        N = int(N)

        adj_mat, ordered = np.zeros((N, N)), []
        for e in edges:
            i, j = (int(v) for v in e)

            if i == j:
                raise InvalidTopology("Self-loops are not allowed (node {}).".format(i))
            if not (0 <= i < N and 0 <= j < N):
                raise InvalidTopology("Edge ({}, {}) has a node outside [0, {}].".format(i, j, N-1))

            if not adj_mat[i,j]:
                adj_mat[i,j], adj_mat[j,i] = 1, 1
                ordered.append((min(i, j), max(i, j)))

        return cls(adj_mat, edges=ordered)

    def arcs(self, mode="full"):
        """
        Directed message topology.

        In "half" mode one arc :math:`\\min(i,j) \\to \\max(i,j)` is
        created for each undirected edge, in "full" mode both arcs
        :math:`i \\to j` and :math:`j \\to i` (with consecutive indices).
        Arcs are indexed from :math:`0` in the enumeration order of the
        edges.

        Parameters
        ----------
        mode : str, optional
            Either "half" or "full" (default).

        Returns
        -------
        tails : ndarray
            The source node of each arc.
        heads : ndarray
            The destination node of each arc.
        index : ndarray
            Table with the index of arc :math:`i \\to j` in position
            :math:`(i,j)`, and :math:`-1` if there is no such arc.

        Raises
        ------
        ValueError
            For an unknown mode.
        """

        if mode not in ("half", "full"):
            raise ValueError("Unknown topology mode '{}', use 'half' or 'full'.".format(mode))

        if mode not in self._arcs:

            pairs = []
            for i, j in self.edges:
                pairs.append((i, j))
                if mode == "full": pairs.append((j, i))

            tails = np.array([p[0] for p in pairs], dtype=int)
            heads = np.array([p[1] for p in pairs], dtype=int)

            index = -np.ones((self.N, self.N), dtype=int)
            index[tails, heads] = np.arange(len(pairs))

            self._arcs[mode] = (tails, heads, index)

        return self._arcs[mode]

    def send(self, sender, receiver, packet, tag=None):
        """
        Node-to-node transmission (sender phase).

        This method simulates a node-to-node transmission by storing the packet
        to be communicated in the `buffer`. In particular, if :math:`i` is the
        sender and :math:`j` the receiver, then the packet is introduced in
        `buffer` with keyword :math:`(j,i,tag)`.

        Note that older information (if any) in the `buffer` is overwritten
        whenever `send` is called with the same tag.

        Parameters
        ----------
        sender : int
            The index of the transmitting node.
        receiver : int
            The index of the recipient.
        packet : array_like
            The packet to be communicated.
        tag : str, optional
            The channel of the transmission.
        """

        self.buffer[receiver, sender, tag] = packet

    def receive(self, receiver, sender, default=0, destructive=True, tag=None):
        """
        Node-to-node transmission (receiver phase).

        This method simulates the reception of a packet previously transmitted
        using the `send` method. If the packet is not present, a default
        value is returned.

        Reads from the `buffer` can be destructive, meaning that the packet
        is read and removed, which is the default, or not.

        Parameters
        ----------
        receiver : int
            The index of the recipient.
        sender : int
            The index of the transmitting node.
        default : array_like, optional
            The value returned when a packet from `sender` to `receiver` is not
            found in the `buffer`.
        destructive : bool, optional
            Specifies if the packet should be removed from the `buffer` after
            being read (which is the default) or not.
        tag : str, optional
            The channel of the transmission.

        Returns
        -------
        array_like
            The packet or a default value.
        """

        return self.buffer.pop((receiver, sender, tag), default) if destructive \
               else self.buffer.get((receiver, sender, tag), default)

    def broadcast(self, sender, packet, tag=None):
        """
        Broadcast transmission.

        The node sends the same packet to all its neighbors (but not to
        itself), using the `send` method.
        """

        for r in self.neighbors[sender]: self.send(sender, r, packet, tag=tag)

    def flush(self):
        """
        Discard all undelivered packets.
        """

        self.buffer.clear()


#%% TOOLS

def is_connected(adj_mat):
    """
    Verify if a graph is connected.

    Parameters
    ----------
    adj_mat : ndarray
        Adjacency matrix describing the graph.

    Returns
    -------
    bool
        True if the graph is connected, False otherwise.

    Notes
    -----
    The connectedness of the graph is checked by verifying whether the
    :math:`N`-th power of the adjacency matrix plus the identity is a full
    matrix (no zero elements), with :math:`N` the number of nodes. The powers
    are clipped to :math:`\\{0, 1\\}` (reachability) at each step, so that
    they stay bounded on dense graphs.
    """

    adj_mat = np.asarray(adj_mat)
    N = adj_mat.shape[0]

    reach, hops = ((adj_mat != 0) | np.eye(N, dtype=bool)).astype(float), 1

    # nodes reachable in 1, 2, 4, ... hops until N-1 hops are covered
    while hops < N-1:
        reach, hops = (reach.dot(reach) > 0).astype(float), 2*hops

    return bool(np.all(reach > 0))
