"""
Geometry Module for the Supplier Template Engine.

Normalized, resolution-independent page coordinates.
"""

from .bounding_box import BoundingBox, clamp, area, contains_point, overlap_fraction

__all__ = ['BoundingBox', 'clamp', 'area', 'contains_point', 'overlap_fraction']
