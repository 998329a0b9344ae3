"""
Greedy disjoint pairing (maximal matching) over the neighbor graph.

Points are visited in ascending slot order. A point that is not yet taken
takes the first neighbor in its list that is not taken either; both become
taken and each other's partner. A point whose neighbors are all taken stays
unpaired for this pass. The result is maximal, not maximum, and depends on
point order and neighbor order.
"""

import taichi as ti


@ti.kernel
def compute_disjoint_pairs(nbr: ti.template(), nbr_ct: ti.template(),
                           partner: ti.template(), taken: ti.template(), n: ti.i32):
    for i in range(n):
        partner[i] = -1
        taken[i] = 0

    # Each decision depends on every earlier one
    ti.loop_config(serialize=True)
    for i in range(n):
        if taken[i] == 0:
            q = -1
            for s in range(nbr_ct[i]):
                if q < 0:
                    cand = nbr[i, s]
                    if taken[cand] == 0:
                        q = cand
            if q >= 0:
                partner[i] = q
                partner[q] = i
                taken[i] = 1
                taken[q] = 1


def compute_matching(store):
    """Clear every partner field and rebuild the matching from current neighbor lists."""
    if store.n == 0:
        return
    compute_disjoint_pairs(store.nbr, store.nbr_ct, store.partner, store.taken, store.n)


def matching_pairs(store):
    """Matched pairs as (handle_a, handle_b) with a < b, in ascending order of a."""
    partner_np = store.partner_slots()
    return [(store.handle(i), store.handle(int(p)))
            for i, p in enumerate(partner_np) if p > i]
