"""
Bounding-box geometry for rotated text runs.
"""

import math
from typing import Sequence

import numpy as np

from ...shared.models.tags import BoundingBox


DESCENT_RATIO = 0.2


def compute_bounding_box(transform: Sequence[float], width: float, height: float) -> BoundingBox:
    """
    Axis-aligned envelope of a rotated text run.

    The run is treated as a rectangle anchored at ``(e, f)`` whose bottom edge
    sits ``0.2 * height`` below the baseline. Its four corners are rotated by
    ``atan2(b, a)`` and translated by ``(e, f)``.

    Args:
        transform: Affine matrix ``[a, b, c, d, e, f]``
        width: Run width
        height: Run height

    Returns:
        Bounding box enclosing the transformed corners
    """
    a, b, _, _, e, f = transform
    angle = math.atan2(b, a)
    descent = height * DESCENT_RATIO

    corners = np.array([
        [0.0, -descent],
        [width, -descent],
        [width, height],
        [0.0, height],
    ], dtype=float)

    cos, sin = math.cos(angle), math.sin(angle)
    xs = corners[:, 0] * cos - corners[:, 1] * sin + e
    ys = corners[:, 0] * sin + corners[:, 1] * cos + f

    return BoundingBox(
        x1=float(xs.min()),
        y1=float(ys.min()),
        x2=float(xs.max()),
        y2=float(ys.max()),
    )
