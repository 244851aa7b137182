"""
Bounding Box Geometry Module
Box type, ROI-to-frame coordinate mapping and cropping
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box in pixel units, top-left origin.
    """

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Box size must be non-negative, got {self.width}x{self.height}")

    @classmethod
    def from_xywh(cls, values):
        """Build a box from any 4-sequence (e.g. a detectMultiScale row)."""
        x, y, w, h = (int(v) for v in values)
        return cls(x, y, w, h)

    @property
    def area(self):
        return self.width * self.height

    @property
    def is_empty(self):
        return self.width == 0 or self.height == 0

    @property
    def origin(self):
        return self.x, self.y

    def as_tuple(self):
        return self.x, self.y, self.width, self.height


def to_global(local_box, roi_origin):
    """
    Translate a box found inside a region of interest to frame coordinates.

    No clamping is applied; the result is only guaranteed to be in-frame
    when the ROI itself was.

    Args:
        local_box: BoundingBox relative to the ROI
        roi_origin: (x, y) of the ROI's top-left corner, or a BoundingBox

    Returns:
        BoundingBox in frame coordinates
    """
    if isinstance(roi_origin, BoundingBox):
        roi_origin = roi_origin.origin
    ox, oy = roi_origin
    return BoundingBox(
        local_box.x + int(ox),
        local_box.y + int(oy),
        local_box.width,
        local_box.height,
    )


def crop(image, box):
    """
    Return the part of image covered by box (a view, not a copy).

    The box is intersected with the image bounds first, so the result
    may have zero rows or columns.
    """
    h, w = image.shape[:2]
    x0 = min(max(box.x, 0), w)
    y0 = min(max(box.y, 0), h)
    x1 = min(max(box.x + box.width, 0), w)
    y1 = min(max(box.y + box.height, 0), h)
    return image[y0:y1, x0:x1]
