"""
Binaural Paths: evolving a walk between two speakers

A small framework for growing smooth paths from a start point to a goal
through a loudness field cast by two point sources, using a generational
genetic search over spline control points.
"""

__version__ = "0.1.0"
