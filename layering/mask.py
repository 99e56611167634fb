"""
Post-processing of GrabCut masks into clean binary foreground masks.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from image_processing import (
    MASK_THRESHOLD, binary_threshold, canny_edges, ellipse_kernel,
    external_contours, largest_contour, rect_kernel, resize_to,
)
from layering.models import ComplexityLevel

# Tighter than the classifier's thresholds to catch fine portrait detail
DETAIL_EDGE_LOW = 30
DETAIL_EDGE_HIGH = 90
DETAIL_WINDOW = 5
DETAIL_MAJORITY = 12


def kernel_size_for(level: ComplexityLevel) -> int:
    if level in (ComplexityLevel.COMPLEX, ComplexityLevel.PORTRAIT):
        return 5
    return 3


class MaskProcessor:
    """Binarizes, smooths and filters foreground masks."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def extract_foreground(self, trimap: np.ndarray) -> np.ndarray:
        """Map a GrabCut trimap to a binary {0, 255} mask."""
        foreground = (trimap == cv2.GC_FGD) | (trimap == cv2.GC_PR_FGD)
        return np.where(foreground, 255, 0).astype(np.uint8)

    def morphology_optimize(self, mask: np.ndarray, kernel_size: int) -> np.ndarray:
        """Open to drop isolated noise, then close to fill small holes."""
        kernel = ellipse_kernel(kernel_size)
        opened = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)
        return cv2.morphologyEx(opened, cv2.MORPH_CLOSE, kernel)

    def refine_edges(self, mask: np.ndarray) -> np.ndarray:
        """Smooth the mask contour while keeping the mask binary."""
        dilated = cv2.dilate(mask, ellipse_kernel(2))
        blurred = cv2.GaussianBlur(dilated, (3, 3), 0)
        return binary_threshold(blurred, MASK_THRESHOLD)

    def keep_largest(self, mask: np.ndarray) -> np.ndarray:
        """
        Keep only the largest connected region, filled solid.

        A mask without any region is returned unchanged.
        """
        contours = external_contours(mask)
        if not contours:
            return mask

        index, area = largest_contour(contours)
        self.logger.debug("keep_largest: %d regions, largest area %.0f", len(contours), area)

        largest = np.zeros_like(mask)
        cv2.drawContours(largest, contours, index, 255, thickness=cv2.FILLED)
        return largest

    def detail_preserving_refine(self, mask: np.ndarray, image: np.ndarray) -> np.ndarray:
        """
        Consensus pass over the band around strong image edges.

        Band pixels whose 5x5 neighbourhood holds more than 12 foreground
        pixels keep their own mask value, and so does every other pixel, so
        the refined mask equals the input. Only the band statistics are
        logged.

        Args:
            mask: Binary {0, 255} foreground mask
            image: BGR image at the mask's resolution

        Returns:
            Binary {0, 255} mask, a copy of ``mask``
        """
        edges = canny_edges(image, DETAIL_EDGE_LOW, DETAIL_EDGE_HIGH)
        band = cv2.dilate(edges, rect_kernel(3)) > 0

        # Out-of-image neighbours count as background
        foreground = (mask > 128).astype(np.float32)
        counts = cv2.boxFilter(
            foreground, -1, (DETAIL_WINDOW, DETAIL_WINDOW),
            normalize=False, borderType=cv2.BORDER_CONSTANT,
        )

        refined = mask.copy()
        consensus = band & (counts > DETAIL_MAJORITY)
        refined[consensus] = mask[consensus]
        self.logger.debug(
            "detail refine: %d band pixels, %d with foreground consensus",
            int(np.count_nonzero(band)), int(np.count_nonzero(consensus)),
        )
        return refined

    def rescale(self, mask: np.ndarray, width: int, height: int) -> np.ndarray:
        """Resize a binary mask with linear interpolation and re-binarize it."""
        resized = resize_to(mask, width, height, cv2.INTER_LINEAR)
        return binary_threshold(resized, MASK_THRESHOLD)
