"""
core/curve.py

From a handful of control points to a dense, smooth path.

Each span between neighbouring nodes becomes a cubic Bezier whose
inner handles come from finite differences of the surrounding nodes
(the Catmull-Rom construction). The result passes through every node
and keeps a continuous tangent at the joins.
"""

from __future__ import annotations
from typing import Sequence, Union
import numpy as np

from .geometry import Point, points_to_array

NodeInput = Union[Sequence[Point], np.ndarray]


def _as_nodes(points: NodeInput) -> np.ndarray:
    if isinstance(points, np.ndarray):
        nodes = np.asarray(points, dtype=float)
    else:
        nodes = points_to_array(points)
    if nodes.ndim != 2 or nodes.shape[1] != 2:
        raise ValueError(f"Expected (n, 2) nodes, got shape {nodes.shape}")
    if len(nodes) < 2:
        raise ValueError(f"A curve needs at least 2 nodes, got {len(nodes)}")
    return nodes


def bezier_segments(points: NodeInput) -> np.ndarray:
    """
    Cubic Bezier control polygons for every span.

    Returns:
        Array of shape (n - 1, 4, 2): start, handle, handle, end
    """
    nodes = _as_nodes(points)
    last = len(nodes) - 1

    idx = np.arange(last)
    p0 = nodes[np.maximum(idx - 1, 0)]
    p1 = nodes[idx]
    p2 = nodes[idx + 1]
    p3 = nodes[np.minimum(idx + 2, last)]

    c1 = p1 + (p2 - p0) / 6.0
    c2 = p2 - (p3 - p1) / 6.0
    return np.stack([p1, c1, c2, p2], axis=1)


def _evaluate(segments: np.ndarray, seg_idx: np.ndarray, t: np.ndarray) -> np.ndarray:
    ctrl = segments[seg_idx]
    t = t[:, None]
    mt = 1.0 - t
    return (
        mt ** 3 * ctrl[:, 0]
        + 3.0 * mt ** 2 * t * ctrl[:, 1]
        + 3.0 * mt * t ** 2 * ctrl[:, 2]
        + t ** 3 * ctrl[:, 3]
    )


def sample_curve(points: NodeInput, steps: int) -> np.ndarray:
    """
    Sample a smooth curve through the nodes.

    Samples are spread evenly over a global parameter in which each
    span's share is proportional to its chord length, so the path is
    traversed front to back without reversal.

    Args:
        points: Ordered nodes, endpoints included
        steps: Number of samples (>= 2)

    Returns:
        (steps, 2) array starting exactly at the first node and
        ending exactly at the last
    """
    if steps < 2:
        raise ValueError(f"steps must be >= 2, got {steps}")

    nodes = _as_nodes(points)
    segments = bezier_segments(nodes)
    n_seg = len(segments)

    chords = np.linalg.norm(np.diff(nodes, axis=0), axis=1)
    weights = chords if chords.sum() > 0.0 else np.ones(n_seg)
    bounds = np.concatenate([[0.0], np.cumsum(weights)])

    u = np.linspace(0.0, bounds[-1], steps)
    seg_idx = np.clip(np.searchsorted(bounds, u, side="right") - 1, 0, n_seg - 1)
    span = np.where(weights[seg_idx] > 0.0, weights[seg_idx], 1.0)
    t = np.clip((u - bounds[seg_idx]) / span, 0.0, 1.0)

    # Pin the ends against cumulative-sum rounding
    seg_idx[0], t[0] = 0, 0.0
    seg_idx[-1], t[-1] = n_seg - 1, 1.0

    return _evaluate(segments, seg_idx, t)


def build_path(start: Point, controls: Sequence[Point], goal: Point, steps: int) -> np.ndarray:
    """Sample the curve through [start, *controls, goal]."""
    return sample_curve([start, *controls, goal], steps)
