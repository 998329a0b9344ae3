"""
Neighbor graph construction for Dot Graph.

Two strategies, selected by config.neighbor_method:

- "distance":  edge i -> j for every pair i < j with |pi - pj|² < max_distance².
               Each unordered pair is visited once and recorded only in the
               lower slot's list (j ascending). The graph is directed on
               purpose; the spring step treats every recorded edge as one
               spring acting on both endpoints.

- "k_nearest": for each point, the k closest other points, exact, ordered by
               ascending squared distance with ties broken by ascending slot.
               Length is min(k, n - 1). Inherently directed.

Both kernels rebuild every live list from scratch and touch nothing but
nbr / nbr_ct (plus the nbr_dist scratch). Each outer iteration writes only
its own row, so the outer loop is safe to run in parallel and the result
does not depend on thread scheduling.
"""

import taichi as ti

# ==============================================================================
# Kernel 1: Distance threshold
# ==============================================================================

@ti.kernel
def compute_neighbors_by_distance(pos: ti.template(), nbr: ti.template(),
                                  nbr_ct: ti.template(), n: ti.i32,
                                  max_distance_sq: ti.f32):
    for i in range(n):
        cnt = 0
        for j in range(i + 1, n):
            delta = pos[j] - pos[i]
            if delta.dot(delta) < max_distance_sq:
                nbr[i, cnt] = j
                cnt += 1
        nbr_ct[i] = cnt


# ==============================================================================
# Kernel 2: K nearest
# ==============================================================================

@ti.kernel
def compute_neighbors_by_k_nearest(pos: ti.template(), nbr: ti.template(),
                                   nbr_dist: ti.template(), nbr_ct: ti.template(),
                                   n: ti.i32, k: ti.i32):
    """
    Bounded sorted insertion per point.

    Row i of nbr / nbr_dist is kept sorted by (distance, slot) with at most
    k entries. A candidate j enters when the row is not full or when it is
    strictly closer than the current worst (which it evicts). It is then
    shifted left past every entry that is strictly farther, so equal
    distances keep visiting order, and candidates are visited in ascending
    slot order.
    """
    for i in range(n):
        cnt = 0
        if k > 0:
            for j in range(n):
                if j != i:
                    delta = pos[j] - pos[i]
                    d = delta.dot(delta)

                    s = -1
                    if cnt < k:
                        s = cnt
                        cnt += 1
                    elif d < nbr_dist[i, k - 1]:
                        s = k - 1

                    if s >= 0:
                        moving = 1
                        while moving == 1:
                            moving = 0
                            if s > 0:
                                if nbr_dist[i, s - 1] > d:
                                    nbr_dist[i, s] = nbr_dist[i, s - 1]
                                    nbr[i, s] = nbr[i, s - 1]
                                    s -= 1
                                    moving = 1
                        nbr_dist[i, s] = d
                        nbr[i, s] = j
        nbr_ct[i] = cnt


# ==============================================================================
# Host entry point
# ==============================================================================

def compute_neighbors(store, config):
    """
    Rebuild every live point's neighbor list from current positions.

    Reads positions and config only; writes neighbor lists only. Calling it
    twice with unchanged positions and config gives identical lists.
    """
    n = store.n
    if n == 0:
        return

    if config.neighbor_method == "distance":
        # Non-positive threshold: strict "<" against 0 admits no pair
        max_d = max(0.0, float(config.max_distance))
        compute_neighbors_by_distance(store.pos, store.nbr, store.nbr_ct, n,
                                      max_d * max_d)
    else:
        # Rows hold at most n - 1 entries, and k <= 0 means "no neighbors"
        k = max(0, min(int(config.k_nearest), n - 1))
        compute_neighbors_by_k_nearest(store.pos, store.nbr, store.nbr_dist,
                                       store.nbr_ct, n, k)


def edge_count(store):
    """Number of recorded directed edges among live points."""
    return int(store.nbr_ct.to_numpy()[:store.n].sum())
