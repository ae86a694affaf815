"""
Bounding Box Module.

This module defines the resolution-independent rectangle used for every
zone in the template engine. All four coordinates are fractions of the
page width/height, so a zone drawn on a page rendered at 72 DPI applies
unchanged to the same page rendered at 300 DPI.

Pixel units never cross this module's boundary: `from_pixels` and
`to_pixels` are the only conversions.

Functions:
    clamp: Intersect a box with the unit page
    area: Box area as a fraction of the page
    contains_point: Hit-testing for manual drawing
    overlap_fraction: Share of one box lying inside another
"""

import math
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

from src.utils.exceptions import ValidationError

# Float slack on the page edges (0.7 + 0.3 may land just past 1.0)
_EDGE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class BoundingBox:
    """
    A normalized rectangle on a document page.

    Width and height must be finite and non-negative; a box that violates
    this cannot be clamped meaningfully and is rejected on construction.
    A box may temporarily lie outside the page (e.g. a drag that leaves
    the canvas); `clamp` forces it back before it is stored.

    Attributes:
        x: Left edge as a fraction of page width
        y: Top edge as a fraction of page height
        width: Width as a fraction of page width
        height: Height as a fraction of page height
        page: Optional zero-based page index

    Example:
        >>> box = BoundingBox(x=0.7, y=0.9, width=0.2, height=0.03)
        >>> box.right
        0.9
    """
    x: float
    y: float
    width: float
    height: float
    page: Optional[int] = None

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(name, value, "must be a number")
            if not math.isfinite(value):
                raise ValidationError(name, value, "must be finite")
            object.__setattr__(self, name, float(value))

        if self.width < 0:
            raise ValidationError("width", self.width, "must be non-negative")
        if self.height < 0:
            raise ValidationError("height", self.height, "must be non-negative")
        if self.page is not None and (not isinstance(self.page, int) or self.page < 0):
            raise ValidationError("page", self.page, "must be a non-negative integer")

    @property
    def right(self) -> float:
        """Right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Bottom edge."""
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        """Center point."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def is_normalized(self) -> bool:
        """True when the box lies entirely on the page."""
        return (
            self.x >= 0 and self.y >= 0
            and self.right <= 1 + _EDGE_TOLERANCE and self.bottom <= 1 + _EDGE_TOLERANCE
        )

    @classmethod
    def from_corners(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        page: Optional[int] = None
    ) -> 'BoundingBox':
        """
        Build a box from two opposite corners given in any order.

        A drag that ends above/left of its start still yields a box with
        non-negative width and height.

        Example:
            >>> BoundingBox.from_corners(0.5, 0.5, 0.2, 0.1)
            BoundingBox(x=0.2, y=0.1, width=0.3, height=0.4, page=None)
        """
        return cls(
            x=min(x1, x2),
            y=min(y1, y2),
            width=abs(x2 - x1),
            height=abs(y2 - y1),
            page=page
        )

    @classmethod
    def from_pixels(
        cls,
        bbox: Tuple[float, float, float, float],
        page_width: float,
        page_height: float,
        page: Optional[int] = None
    ) -> 'BoundingBox':
        """
        Convert a pixel rectangle (x1, y1, x2, y2) into a normalized box.

        Args:
            bbox: Pixel corners as produced by the upstream recognizer.
            page_width: Rendered page width in pixels.
            page_height: Rendered page height in pixels.
            page: Optional page index.

        Raises:
            ValidationError: If page dimensions are not positive.
        """
        if page_width <= 0 or page_height <= 0:
            raise ValidationError(
                "page_size", (page_width, page_height), "must be positive"
            )
        x1, y1, x2, y2 = bbox
        return cls.from_corners(
            x1 / page_width, y1 / page_height,
            x2 / page_width, y2 / page_height,
            page=page
        )

    def to_pixels(self, page_width: float, page_height: float) -> Tuple[int, int, int, int]:
        """Project the box onto a page rendered at the given pixel size."""
        return (
            int(round(self.x * page_width)),
            int(round(self.y * page_height)),
            int(round(self.right * page_width)),
            int(round(self.bottom * page_height)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        data = {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
        }
        if self.page is not None:
            data['page'] = self.page
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BoundingBox':
        """
        Create a BoundingBox from a dictionary.

        Extra keys (raw_text, label_found...) found in legacy snapshots
        are ignored.

        Raises:
            ValidationError: If a coordinate is missing or malformed.
        """
        if not isinstance(data, dict):
            raise ValidationError("zone", data, "must be a mapping")
        try:
            values = {k: data[k] for k in ("x", "y", "width", "height")}
        except KeyError as e:
            raise ValidationError(str(e.args[0]), None, "missing coordinate")
        return cls(page=data.get('page'), **values)


def _clamp_axis(start: float, size: float) -> Tuple[float, float]:
    # An axis already on the page is returned as is so stored boxes stay exact
    if start >= 0 and start + size <= 1 + _EDGE_TOLERANCE:
        return start, size
    lo = min(max(start, 0.0), 1.0)
    hi = min(max(start + size, 0.0), 1.0)
    return lo, max(0.0, hi - lo)


def clamp(box: BoundingBox) -> BoundingBox:
    """
    Force a box into the page by intersecting it with the unit square.

    Boxes already on the page come back unchanged; otherwise only the axis
    that leaves the page is cut.

    Returns:
        A box satisfying 0 <= x, y and x + width <= 1, y + height <= 1.

    Example:
        >>> clamp(BoundingBox(0.9, -0.1, 0.3, 0.2))
        BoundingBox(x=0.9, y=0.0, width=0.1, height=0.1, page=None)
    """
    if box.is_normalized:
        return box

    x, width = _clamp_axis(box.x, box.width)
    y, height = _clamp_axis(box.y, box.height)
    return BoundingBox(x=x, y=y, width=width, height=height, page=box.page)


def area(box: BoundingBox) -> float:
    """Area of the box as a fraction of the page area."""
    return box.width * box.height


def contains_point(box: BoundingBox, x: float, y: float) -> bool:
    """Hit-test a normalized point against the box (edges inclusive)."""
    return box.x <= x <= box.right and box.y <= y <= box.bottom


def overlap_fraction(inner: BoundingBox, outer: BoundingBox) -> float:
    """
    Fraction of `inner`'s area lying inside `outer`.

    Degenerate (zero-area) inner boxes count as fully inside when their
    center is inside `outer`.
    """
    if inner.page is not None and outer.page is not None and inner.page != outer.page:
        return 0.0

    inner_area = area(inner)
    if inner_area == 0:
        cx, cy = inner.center
        return 1.0 if contains_point(outer, cx, cy) else 0.0

    width = min(inner.right, outer.right) - max(inner.x, outer.x)
    height = min(inner.bottom, outer.bottom) - max(inner.y, outer.y)
    if width <= 0 or height <= 0:
        return 0.0
    return min(1.0, (width * height) / inner_area)
