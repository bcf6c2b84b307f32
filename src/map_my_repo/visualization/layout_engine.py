"""Force-directed layout over the visible graph.

This module runs a continuous soft relaxation in the style of d3-force:
    - Link force: springs toward a per-kind target distance (target node's kind)
    - Many-body force: pairwise repulsion weighted by node kind
    - Collision force: minimum separation of radius + label margin
    - Centering force: weak pull toward the origin (forceX/forceY)

Energy Model:
    ``alpha`` decays geometrically toward ``alpha_target`` every tick and the
    simulation idles once it drops below ``alpha_min``. Topology changes
    reheat it; a drag keeps it warm by raising ``alpha_target``.

The engine only writes ``x/y/vx/vy`` of existing ``GraphNode``s. It never
adds or removes nodes.
"""

from __future__ import annotations

import random

import numpy as np
from loguru import logger

from ..config.settings import ForceSettings
from .models import GraphEdge, GraphNode


def _jiggle(rng: random.Random) -> float:
    """Tiny random offset used to separate exactly coincident points."""
    return (rng.random() - 0.5) * 1e-6


class ForceLayoutEngine:
    """Steps node positions one tick at a time.

    Args:
        settings: Force tuning (per-kind distances, charges and radii)
        rng: Random source for de-degenerating coincident nodes
    """

    def __init__(
        self, settings: ForceSettings | None = None, rng: random.Random | None = None
    ) -> None:
        self.settings = settings or ForceSettings()
        self._rng = rng or random.Random()
        self.alpha = 1.0
        self.alpha_target = 0.0
        self.tick_count = 0

    @property
    def active(self) -> bool:
        """Whether the simulation still has energy to spend."""
        return (
            self.alpha >= self.settings.alpha_min
            or self.alpha_target >= self.settings.alpha_min
        )

    def reheat(self, alpha: float | None = None) -> None:
        """Boost energy so the layout resumes relaxing."""
        alpha = self.settings.reheat_alpha if alpha is None else alpha
        was_active = self.active
        self.alpha = max(self.alpha, alpha)
        if not was_active:
            logger.debug(f"Layout reheated to alpha={self.alpha:.3f}")

    def set_alpha_target(self, target: float) -> None:
        self.alpha_target = target

    def tick(
        self, nodes: list[GraphNode], edges: list[GraphEdge], root_id: str | None = None
    ) -> bool:
        """Advance the simulation by one step.

        Args:
            nodes: Visible nodes (positions are updated in place)
            edges: Visible edges between them
            root_id: Id of the root node, which gets the strongest charge

        Returns:
            True if a step was taken, False if the layout is idle
        """
        if not self.active or not nodes:
            return False

        s = self.settings
        self.alpha += (self.alpha_target - self.alpha) * s.alpha_decay
        self.tick_count += 1

        x = np.array([n.x for n in nodes], dtype=float)
        y = np.array([n.y for n in nodes], dtype=float)
        vx = np.array([n.vx for n in nodes], dtype=float)
        vy = np.array([n.vy for n in nodes], dtype=float)
        index = {n.id: i for i, n in enumerate(nodes)}

        self._apply_links(nodes, edges, index, x, y, vx, vy)
        self._apply_charge(nodes, root_id, x, y, vx, vy)
        self._apply_centering(x, y, vx, vy)
        for _ in range(s.collision_iterations):
            self._apply_collision(nodes, x, y, vx, vy)

        keep = 1.0 - s.velocity_decay
        for i, node in enumerate(nodes):
            if node.fx is not None and node.fy is not None:
                node.x, node.y = node.fx, node.fy
                node.vx = node.vy = 0.0
                continue
            node.vx = float(vx[i] * keep)
            node.vy = float(vy[i] * keep)
            node.x = float(x[i] + node.vx)
            node.y = float(y[i] + node.vy)

        if not self.active:
            logger.debug(f"Layout settled after {self.tick_count} ticks")
        return True

    def _apply_links(
        self,
        nodes: list[GraphNode],
        edges: list[GraphEdge],
        index: dict[str, int],
        x: np.ndarray,
        y: np.ndarray,
        vx: np.ndarray,
        vy: np.ndarray,
    ) -> None:
        pairs = [
            (index[e.source], index[e.target])
            for e in edges
            if e.source in index and e.target in index
        ]
        if not pairs:
            return

        src = np.array([p[0] for p in pairs])
        tgt = np.array([p[1] for p in pairs])
        distance = np.array([self.settings.distance_for(nodes[t].kind) for t in tgt])

        # Heavier-connected endpoints move less
        degree = np.bincount(np.concatenate([src, tgt]), minlength=len(nodes))
        bias = degree[src] / (degree[src] + degree[tgt])

        dx = x[tgt] + vx[tgt] - x[src] - vx[src]
        dy = y[tgt] + vy[tgt] - y[src] - vy[src]
        for i in np.flatnonzero((dx == 0) & (dy == 0)):
            dx[i] = _jiggle(self._rng)
            dy[i] = _jiggle(self._rng)

        length = np.hypot(dx, dy)
        scale = (length - distance) / length * self.alpha * self.settings.link_strength
        dx *= scale
        dy *= scale

        np.subtract.at(vx, tgt, dx * bias)
        np.subtract.at(vy, tgt, dy * bias)
        np.add.at(vx, src, dx * (1 - bias))
        np.add.at(vy, src, dy * (1 - bias))

    def _apply_charge(
        self,
        nodes: list[GraphNode],
        root_id: str | None,
        x: np.ndarray,
        y: np.ndarray,
        vx: np.ndarray,
        vy: np.ndarray,
    ) -> None:
        if len(nodes) < 2:
            return

        strength = np.array(
            [self.settings.charge_for(n.kind, is_root=n.id == root_id) for n in nodes]
        )
        # dx[i, j] points from i to j
        dx = x[None, :] - x[:, None]
        dy = y[None, :] - y[:, None]
        dist2 = np.maximum(dx * dx + dy * dy, 1.0)
        weight = strength[None, :] * self.alpha / dist2
        np.fill_diagonal(weight, 0.0)

        vx += (dx * weight).sum(axis=1)
        vy += (dy * weight).sum(axis=1)

    def _apply_centering(
        self, x: np.ndarray, y: np.ndarray, vx: np.ndarray, vy: np.ndarray
    ) -> None:
        k = self.settings.center_strength * self.alpha
        vx -= x * k
        vy -= y * k

    def _apply_collision(
        self,
        nodes: list[GraphNode],
        x: np.ndarray,
        y: np.ndarray,
        vx: np.ndarray,
        vy: np.ndarray,
    ) -> None:
        if len(nodes) < 2:
            return

        s = self.settings
        radius = np.array([s.radius_for(n.kind) + s.collision_margin for n in nodes])

        px = x + vx
        py = y + vy
        dx = px[:, None] - px[None, :]
        dy = py[:, None] - py[None, :]
        reach = radius[:, None] + radius[None, :]
        dist2 = dx * dx + dy * dy

        overlap = np.triu(dist2 < reach * reach, k=1)
        if not overlap.any():
            return

        for i, j in zip(*np.nonzero(overlap & (dist2 == 0))):
            dx[i, j] = _jiggle(self._rng)
            dy[i, j] = _jiggle(self._rng)
            dist2[i, j] = dx[i, j] ** 2 + dy[i, j] ** 2

        dist = np.sqrt(np.where(overlap, dist2, 1.0))
        push = np.where(overlap, (reach - dist) / dist * s.collision_strength, 0.0)
        px_push = dx * push
        py_push = dy * push

        # Smaller nodes yield more
        r2 = radius * radius
        share = r2[None, :] / (r2[:, None] + r2[None, :])

        vx += (px_push * share).sum(axis=1) - (px_push * (1 - share)).sum(axis=0)
        vy += (py_push * share).sum(axis=1) - (py_push * (1 - share)).sum(axis=0)
