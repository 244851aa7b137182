"""
Face Detection Module
OpenCV Haar cascade detectors for faces and eye regions
"""

import logging
import os

import cv2
import numpy as np

from drowsiness_monitor.errors import DetectorLoadError
from drowsiness_monitor.geometry import BoundingBox, crop, to_global

_log = logging.getLogger(__name__)


def resolve_cascade_path(name):
    """
    Locate a cascade file.

    Args:
        name: Path to an XML file, or a bare file name shipped with OpenCV

    Returns:
        Path to an existing file

    Raises:
        DetectorLoadError: If the file cannot be found
    """
    if os.path.isfile(name):
        return name
    bundled = os.path.join(cv2.data.haarcascades, name)
    if os.path.isfile(bundled):
        return bundled
    raise DetectorLoadError(
        f"Cascade file not found: {name}\n"
        f"Looked in the working directory and {cv2.data.haarcascades}"
    )


class CascadeDetector:
    """
    Viola-Jones cascade detector returning bounding boxes.
    """

    def __init__(self, cascade, merge_threshold, scale_factor=1.1, min_size=(20, 20)):
        """
        Load a cascade classifier.

        Args:
            cascade: Cascade file name or path
            merge_threshold: Neighbouring raw detections needed to report one box
            scale_factor: Image pyramid step
            min_size: Smallest (width, height) searched for

        Raises:
            DetectorLoadError: If the cascade cannot be loaded
        """
        self.cascade_path = resolve_cascade_path(cascade)
        try:
            self.classifier = cv2.CascadeClassifier(self.cascade_path)
        except cv2.error as e:
            raise DetectorLoadError(f"Failed to load cascade: {self.cascade_path} ({e})") from e
        if self.classifier.empty():
            raise DetectorLoadError(f"Failed to load cascade: {self.cascade_path}")
        self.merge_threshold = merge_threshold
        self.scale_factor = scale_factor
        self.min_size = min_size
        _log.info("Loaded cascade %s (merge threshold %d)",
                  os.path.basename(self.cascade_path), merge_threshold)

    def detect(self, image, roi=None):
        """
        Detect objects in a grayscale image.

        Args:
            image: Single-channel image
            roi: Optional BoundingBox restricting the search; returned boxes
                 are still in image coordinates

        Returns:
            List of BoundingBox in detector order (possibly empty)
        """
        region = image if roi is None else crop(image, roi)
        if region.size == 0:
            return []

        found = self.classifier.detectMultiScale(
            region,
            scaleFactor=self.scale_factor,
            minNeighbors=self.merge_threshold,
            minSize=self.min_size,
        )
        boxes = [BoundingBox.from_xywh(row) for row in np.asarray(found).reshape(-1, 4)]
        if roi is not None:
            origin = (max(roi.x, 0), max(roi.y, 0))
            boxes = [to_global(box, origin) for box in boxes]
        return boxes


def create_detectors(config):
    """
    Build the face and eye-region detectors.

    Args:
        config: MonitorConfig

    Returns:
        Tuple of (face_detector, eye_detector)
    """
    face_detector = CascadeDetector(config.face_cascade, config.face_detector_merge_threshold)
    eye_detector = CascadeDetector(
        config.eye_cascade,
        config.eye_detector_merge_threshold,
        min_size=(10, 5),
    )
    return face_detector, eye_detector
