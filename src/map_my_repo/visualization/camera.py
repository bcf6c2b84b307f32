"""Camera controller: view transform, focus animation and pan/zoom."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from ..config.settings import CameraSettings
from .models import Transform


def ease_cubic_out(t: float) -> float:
    """Cubic ease-out on ``[0, 1]``."""
    t = min(max(t, 0.0), 1.0)
    return 1 - (1 - t) ** 3


@dataclass
class _FocusAnimation:
    node_id: str
    start: Transform
    end: Transform
    duration: float
    elapsed: float = 0.0


class CameraController:
    """Owns the 2D view transform.

    The world point under the viewport center is ``(w/2 - x) / k``; focusing
    a node moves that point onto the node while zooming to ``focus_zoom``.

    Args:
        settings: Viewport size, zoom range and focus animation parameters
        position_of: Returns the current world position of a node id
    """

    def __init__(
        self,
        settings: CameraSettings | None = None,
        position_of: Callable[[str], tuple[float, float]] | None = None,
    ) -> None:
        self.settings = settings or CameraSettings()
        self._position_of = position_of
        self._transform = Transform(
            x=self.settings.width / 2, y=self.settings.height / 2, k=1.0
        )
        self._animation: _FocusAnimation | None = None

    @property
    def transform(self) -> Transform:
        return self._transform

    @property
    def animating(self) -> bool:
        return self._animation is not None

    @property
    def focus_target(self) -> str | None:
        return self._animation.node_id if self._animation else None

    def resize(self, width: float, height: float) -> None:
        self.settings.width = width
        self.settings.height = height

    def clamp_zoom(self, k: float) -> float:
        return min(max(k, self.settings.min_zoom), self.settings.max_zoom)

    def transform_centering(self, point: tuple[float, float], k: float) -> Transform:
        """Transform that puts world ``point`` at the viewport center at scale ``k``."""
        k = self.clamp_zoom(k)
        return Transform(
            x=self.settings.width / 2 - point[0] * k,
            y=self.settings.height / 2 - point[1] * k,
            k=k,
        )

    def focus(self, node_id: str, position: tuple[float, float] | None = None) -> None:
        """Animate toward the node's current position at the focus zoom.

        A running focus animation is replaced, never queued.

        Raises:
            TreeNodeNotFoundError: If the position lookup does not know ``node_id``
        """
        if position is None:
            if self._position_of is None:
                raise ValueError("No position given and no position lookup configured")
            position = self._position_of(node_id)

        target = self.transform_centering(position, self.settings.focus_zoom)
        if self._animation is not None:
            logger.debug(
                f"Focus on {node_id} replaces focus on {self._animation.node_id}"
            )
        self._animation = _FocusAnimation(
            node_id=node_id,
            start=self._transform,
            end=target,
            duration=self.settings.focus_duration,
        )

    def pan_zoom(
        self,
        dx: float = 0.0,
        dy: float = 0.0,
        scale: float = 1.0,
        anchor: tuple[float, float] | None = None,
    ) -> Transform:
        """Apply direct manipulation and cancel any focus animation.

        Args:
            dx: Screen-space horizontal pan
            dy: Screen-space vertical pan
            scale: Zoom factor (1.0 = no zoom)
            anchor: Screen point kept fixed while zooming (default: viewport center)

        Returns:
            The new transform
        """
        self._animation = None
        current = self._transform

        if anchor is None:
            anchor = (self.settings.width / 2, self.settings.height / 2)
        k = self.clamp_zoom(current.k * scale)
        world = current.invert(anchor)

        self._transform = Transform(
            x=anchor[0] - world[0] * k + dx,
            y=anchor[1] - world[1] * k + dy,
            k=k,
        )
        return self._transform

    def advance(self, dt: float) -> bool:
        """Step the focus animation by ``dt`` seconds.

        Returns:
            True if the transform changed
        """
        animation = self._animation
        if animation is None:
            return False

        animation.elapsed += dt
        t = (
            1.0
            if animation.duration <= 0
            else min(animation.elapsed / animation.duration, 1.0)
        )
        self._transform = self._interpolate(animation.start, animation.end, ease_cubic_out(t))

        if t >= 1.0:
            self._transform = animation.end
            self._animation = None
            logger.debug(f"Focus on {animation.node_id} complete")
        return True

    def _interpolate(self, a: Transform, b: Transform, t: float) -> Transform:
        # Scale moves geometrically, the centered world point linearly
        k = a.k * math.pow(b.k / a.k, t)
        cx, cy = self.settings.width / 2, self.settings.height / 2
        ax, ay = (cx - a.x) / a.k, (cy - a.y) / a.k
        bx, by = (cx - b.x) / b.k, (cy - b.y) / b.k
        wx = ax + (bx - ax) * t
        wy = ay + (by - ay) * t
        return Transform(x=cx - wx * k, y=cy - wy * k, k=k)
