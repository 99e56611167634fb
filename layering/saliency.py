"""
Gradient-based saliency estimation used to seed GrabCut.

The saliency map is a blurred, Otsu-thresholded Sobel magnitude: textured,
high-contrast regions light up as blobs, flat backdrops stay dark.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from image_processing import (
    ellipse_kernel, external_contours, largest_contour, otsu_threshold, to_gray
)

BLUR_KERNEL_SIZE = 21
RECT_DILATE_SIZE = 21
MASK_DILATE_SIZE = 11

RECT_PADDING = 0.05
FALLBACK_INSET = 0.1
BORDER_BAND = 0.03
SALIENT_LEVEL = 128

Rect = Tuple[int, int, int, int]


class SaliencyDetector:
    """Builds saliency maps, salient rectangles and GrabCut trimaps."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def detect(self, image: np.ndarray) -> np.ndarray:
        """Return a binary {0, 255} saliency map at image resolution."""
        gray = to_gray(image)

        grad_x = cv2.Sobel(gray, cv2.CV_16S, 1, 0, ksize=3)
        grad_y = cv2.Sobel(gray, cv2.CV_16S, 0, 1, ksize=3)
        gradient = cv2.addWeighted(
            cv2.convertScaleAbs(grad_x), 0.5, cv2.convertScaleAbs(grad_y), 0.5, 0
        )

        # Heavy blur turns thin edges into blob-like regions
        blurred = cv2.GaussianBlur(gradient, (BLUR_KERNEL_SIZE, BLUR_KERNEL_SIZE), 0)
        return otsu_threshold(blurred)

    def extract_rect(self, saliency: np.ndarray, width: int, height: int) -> Rect:
        """
        Bounding rectangle (x, y, w, h) of the largest salient region.

        The rectangle is padded by 5% of its width and clamped to the image.
        Without any salient region a rectangle inset 10% from each edge is
        returned.
        """
        dilated = cv2.dilate(saliency, ellipse_kernel(RECT_DILATE_SIZE))
        contours = external_contours(dilated)

        if not contours:
            inset_x = int(width * FALLBACK_INSET)
            inset_y = int(height * FALLBACK_INSET)
            return inset_x, inset_y, width - 2 * inset_x, height - 2 * inset_y

        index, _ = largest_contour(contours)
        x, y, w, h = cv2.boundingRect(contours[index])

        padding = int(w * RECT_PADDING)
        x0 = max(0, x - padding)
        y0 = max(0, y - padding)
        x1 = min(width, x + w + padding)
        y1 = min(height, y + h + padding)
        return x0, y0, x1 - x0, y1 - y0

    def create_mask(self, saliency: np.ndarray, width: int, height: int) -> np.ndarray:
        """
        Build a GrabCut trimap from a saliency map.

        Returns:
            uint8 mask with GC_PR_BGD everywhere, GC_PR_FGD on dilated salient
            pixels and GC_BGD on a border band of 3% of the width
        """
        mask = np.full((height, width), cv2.GC_PR_BGD, dtype=np.uint8)

        dilated = cv2.dilate(saliency, ellipse_kernel(MASK_DILATE_SIZE))
        mask[dilated > SALIENT_LEVEL] = cv2.GC_PR_FGD

        # GrabCut needs definite background to converge; the band wins over saliency
        band = max(1, int(width * BORDER_BAND))
        mask[:band, :] = cv2.GC_BGD
        mask[-band:, :] = cv2.GC_BGD
        mask[:, :band] = cv2.GC_BGD
        mask[:, -band:] = cv2.GC_BGD
        return mask
