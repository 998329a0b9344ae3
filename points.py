"""
Point arena for Dot Graph.

All per-point state lives in fixed-capacity Taichi fields indexed by slot:

  pos, vel, acc   ti.Vector.field(2, f32)    kinematics
  nbr             ti.field(i32, (cap, cap))  neighbor slots, row i = list of i
  nbr_ct          ti.field(i32, cap)         used length of each row
  nbr_dist        ti.field(f32, (cap, cap))  k-nearest scratch (squared dist)
  partner         ti.field(i32, cap)         partner slot, -1 = none
  taken           ti.field(i32, cap)         pairing scratch

Live points occupy slots [0, n). Kernels only ever see slot integers;
outside the arena points are named by handles that carry the arena
generation, so a handle from before a clear() can't alias a new point.

Fields are allocated in the constructor, so ti.init() must run first.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import taichi as ti

from config import MAX_POINTS

SLOT_BITS = 20
SLOT_MASK = (1 << SLOT_BITS) - 1
OFFSCREEN = -1000.0


class StaleHandleError(LookupError):
    """Raised when a handle does not name a live point."""


@dataclass(frozen=True)
class PointSnapshot:
    handle: int
    position: Tuple[float, float]
    neighbors: Tuple[int, ...]
    partner: Optional[int]


# ==============================================================================
# Kernels
# ==============================================================================

@ti.kernel
def clear_all_points(pos: ti.template(), vel: ti.template(), acc: ti.template(),
                     nbr_ct: ti.template(), partner: ti.template(),
                     taken: ti.template(), capacity: ti.i32):
    """
    Reset every slot: park positions off screen, zero kinematics and
    graph state. Runs over the whole capacity so nothing from a previous
    batch can show up again.
    """
    for i in range(capacity):
        pos[i] = ti.Vector([OFFSCREEN, OFFSCREEN])
        vel[i] = ti.Vector([0.0, 0.0])
        acc[i] = ti.Vector([0.0, 0.0])
        nbr_ct[i] = 0
        partner[i] = -1
        taken[i] = 0


@ti.kernel
def reset_points(vel: ti.template(), acc: ti.template(), nbr_ct: ti.template(),
                 partner: ti.template(), start: ti.i32, end: ti.i32):
    """Zero kinematics and graph state for freshly spawned slots [start, end)."""
    for i in range(start, end):
        vel[i] = ti.Vector([0.0, 0.0])
        acc[i] = ti.Vector([0.0, 0.0])
        nbr_ct[i] = 0
        partner[i] = -1


# ==============================================================================
# Arena
# ==============================================================================

class PointStore:
    """Fixed-capacity arena of 2D points addressed by generation-checked handles."""

    def __init__(self, capacity=MAX_POINTS):
        if capacity < 1 or capacity > SLOT_MASK + 1:
            raise ValueError(f"capacity must be in [1, {SLOT_MASK + 1}], got {capacity}")
        self.capacity = capacity
        self.n = 0
        self.generation = 0

        self.pos = ti.Vector.field(2, dtype=ti.f32, shape=capacity)
        self.vel = ti.Vector.field(2, dtype=ti.f32, shape=capacity)
        self.acc = ti.Vector.field(2, dtype=ti.f32, shape=capacity)
        self.nbr = ti.field(dtype=ti.i32, shape=(capacity, capacity))
        self.nbr_ct = ti.field(dtype=ti.i32, shape=capacity)
        self.nbr_dist = ti.field(dtype=ti.f32, shape=(capacity, capacity))
        self.partner = ti.field(dtype=ti.i32, shape=capacity)
        self.taken = ti.field(dtype=ti.i32, shape=capacity)

        clear_all_points(self.pos, self.vel, self.acc, self.nbr_ct,
                         self.partner, self.taken, capacity)

    def __len__(self):
        return self.n

    # --------------------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------------------

    def spawn(self, positions) -> List[int]:
        """
        Create a batch of points at `positions` (shape (m, 2)).

        New points follow the live ones; velocity, acceleration, neighbors
        and partner start empty. Returns the new handles in slot order.
        """
        positions = np.asarray(positions, dtype=np.float32)
        if positions.size == 0:
            return []
        if positions.ndim != 2 or positions.shape[1] != 2:
            raise ValueError(f"positions must have shape (m, 2), got {positions.shape}")
        m = positions.shape[0]
        if self.n + m > self.capacity:
            raise ValueError(f"spawning {m} points would exceed capacity "
                             f"({self.n} live / {self.capacity})")

        start, end = self.n, self.n + m
        pos_np = self.pos.to_numpy()
        pos_np[start:end] = positions
        self.pos.from_numpy(pos_np)
        reset_points(self.vel, self.acc, self.nbr_ct, self.partner, start, end)
        self.n = end
        return [self.handle(i) for i in range(start, end)]

    def clear(self):
        """Destroy every point. Handles issued before this call become stale."""
        clear_all_points(self.pos, self.vel, self.acc, self.nbr_ct,
                         self.partner, self.taken, self.capacity)
        self.n = 0
        self.generation += 1

    # --------------------------------------------------------------------------
    # Handles
    # --------------------------------------------------------------------------

    def handle(self, slot: int) -> int:
        return (self.generation << SLOT_BITS) | slot

    def slot(self, handle: int) -> int:
        """Resolve a handle to its slot, raising StaleHandleError if it isn't live."""
        slot = handle & SLOT_MASK
        if handle < 0 or (handle >> SLOT_BITS) != self.generation or slot >= self.n:
            raise StaleHandleError(f"handle {handle} does not name a live point "
                                   f"(generation {self.generation}, {self.n} live)")
        return slot

    def handles(self) -> List[int]:
        return [self.handle(i) for i in range(self.n)]

    def _handle_or_none(self, slot: int) -> Optional[int]:
        return None if slot < 0 else self.handle(slot)

    # --------------------------------------------------------------------------
    # Per-point access (host side, one point at a time)
    # --------------------------------------------------------------------------

    def position(self, handle) -> Tuple[float, float]:
        p = self.pos[self.slot(handle)]
        return (float(p[0]), float(p[1]))

    def velocity(self, handle) -> Tuple[float, float]:
        v = self.vel[self.slot(handle)]
        return (float(v[0]), float(v[1]))

    def acceleration(self, handle) -> Tuple[float, float]:
        a = self.acc[self.slot(handle)]
        return (float(a[0]), float(a[1]))

    def set_position(self, handle, xy):
        self.pos[self.slot(handle)] = [float(xy[0]), float(xy[1])]

    def set_velocity(self, handle, xy):
        self.vel[self.slot(handle)] = [float(xy[0]), float(xy[1])]

    def set_acceleration(self, handle, xy):
        self.acc[self.slot(handle)] = [float(xy[0]), float(xy[1])]

    def neighbors(self, handle) -> List[int]:
        i = self.slot(handle)
        return [self.handle(self.nbr[i, k]) for k in range(self.nbr_ct[i])]

    def set_neighbors(self, handle, neighbor_handles):
        """Overwrite one neighbor list (order is kept as given)."""
        i = self.slot(handle)
        slots = [self.slot(h) for h in neighbor_handles]
        if i in slots:
            raise ValueError(f"point {handle} cannot be its own neighbor")
        if len(slots) > self.capacity:
            raise ValueError(f"neighbor list of {len(slots)} exceeds row size {self.capacity}")
        for k, j in enumerate(slots):
            self.nbr[i, k] = j
        self.nbr_ct[i] = len(slots)

    def partner_of(self, handle) -> Optional[int]:
        return self._handle_or_none(self.partner[self.slot(handle)])

    # --------------------------------------------------------------------------
    # Bulk views
    # --------------------------------------------------------------------------

    def positions(self) -> np.ndarray:
        return self.pos.to_numpy()[:self.n]

    def velocities(self) -> np.ndarray:
        return self.vel.to_numpy()[:self.n]

    def accelerations(self) -> np.ndarray:
        return self.acc.to_numpy()[:self.n]

    def neighbor_slots(self) -> List[List[int]]:
        """Neighbor lists of all live points as slot lists."""
        nbr_np = self.nbr.to_numpy()
        ct_np = self.nbr_ct.to_numpy()
        return [nbr_np[i, :ct_np[i]].tolist() for i in range(self.n)]

    def partner_slots(self) -> np.ndarray:
        return self.partner.to_numpy()[:self.n]

    def snapshot(self) -> List[PointSnapshot]:
        """Read-only view of every live point for rendering or inspection."""
        pos_np = self.positions()
        partner_np = self.partner_slots()
        out = []
        for i, row in enumerate(self.neighbor_slots()):
            out.append(PointSnapshot(
                handle=self.handle(i),
                position=(float(pos_np[i, 0]), float(pos_np[i, 1])),
                neighbors=tuple(self.handle(j) for j in row),
                partner=self._handle_or_none(int(partner_np[i])),
            ))
        return out
