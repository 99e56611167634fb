"""
Skin-tone based portrait detection.

Skin pixels are found with a fixed YCrCb chroma band; the resulting mask
flags portraits and later pulls skin regions back into the foreground.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np

from image_processing import ellipse_kernel, nonzero_ratio, to_gray

# YCrCb skin band (Y, Cr, Cb)
SKIN_LOWER = np.array([0, 133, 77], dtype=np.uint8)
SKIN_UPPER = np.array([255, 173, 127], dtype=np.uint8)

PORTRAIT_SKIN_RATIO = 0.15
SKIN_KERNEL_SIZE = 5
ENHANCE_KERNEL_SIZE = 15

FACE_CASCADE_FILE = "haarcascade_frontalface_default.xml"


class PortraitDetector:
    """Detects skin regions and faces in BGR images."""

    def __init__(self, cascade_path: str = "", logger: Optional[logging.Logger] = None):
        self.cascade_path = cascade_path
        self.logger = logger or logging.getLogger(__name__)

    def detect_skin(self, image: np.ndarray) -> np.ndarray:
        """Return a binary {0, 255} skin mask at image resolution."""
        ycrcb = cv2.cvtColor(image, cv2.COLOR_BGR2YCrCb)
        skin = cv2.inRange(ycrcb, SKIN_LOWER, SKIN_UPPER)

        # Fill small gaps, then drop speckle
        kernel = ellipse_kernel(SKIN_KERNEL_SIZE)
        skin = cv2.morphologyEx(skin, cv2.MORPH_CLOSE, kernel)
        skin = cv2.morphologyEx(skin, cv2.MORPH_OPEN, kernel)
        return skin

    def skin_ratio(self, image: np.ndarray) -> float:
        return nonzero_ratio(self.detect_skin(image))

    def is_portrait(self, image: np.ndarray) -> bool:
        return self.skin_ratio(image) > PORTRAIT_SKIN_RATIO

    def enhance_portrait_mask(self, mask: np.ndarray, image: np.ndarray) -> np.ndarray:
        """
        Union a binary foreground mask with the dilated skin mask.

        Recovers faces and hands that GrabCut pushed to the background. Every
        foreground pixel of ``mask`` stays foreground in the result.

        Args:
            mask: Binary {0, 255} foreground mask
            image: BGR image the mask was computed from

        Returns:
            Binary {0, 255} mask
        """
        skin = self.detect_skin(image)
        dilated = cv2.dilate(skin, ellipse_kernel(ENHANCE_KERNEL_SIZE))
        return cv2.bitwise_or(mask, dilated)

    def detect_faces(self, image: np.ndarray) -> List[Tuple[int, int, int, int]]:
        """
        Return face rectangles (x, y, w, h) found by a Haar cascade.

        Face boxes only enrich the result; a missing cascade file yields an
        empty list instead of an error.
        """
        classifier = self._load_cascade()
        if classifier is None:
            return []

        faces = classifier.detectMultiScale(to_gray(image))
        return [tuple(int(v) for v in face) for face in faces]

    def _load_cascade(self) -> Optional["cv2.CascadeClassifier"]:
        path = self.cascade_path
        if not path:
            data_dir = getattr(getattr(cv2, "data", None), "haarcascades", "")
            path = str(Path(data_dir) / FACE_CASCADE_FILE)

        if not Path(path).is_file():
            self.logger.warning("face cascade not found, skipping face detection: %s", path)
            return None

        try:
            classifier = cv2.CascadeClassifier(path)
        except cv2.error as e:
            self.logger.warning("face cascade could not be parsed: %s (%s)", path, e)
            return None
        if classifier.empty():
            self.logger.warning("face cascade could not be loaded: %s", path)
            return None
        return classifier
