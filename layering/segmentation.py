"""
GrabCut driver: picks the initialization mode and iteration budget per scene.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from layering.models import ComplexityInfo, ComplexityLevel
from layering.saliency import Rect, SaliencyDetector

MIN_ITERATIONS = 3
REFINE_ITERATIONS = 2
MIN_BORDER = 10
BORDER_FALLBACK = 0.05


def iterations_for(level: ComplexityLevel, configured: int) -> int:
    """GrabCut iteration count for the first pass at a given complexity."""
    if level == ComplexityLevel.SIMPLE:
        return max(MIN_ITERATIONS, configured - 2)
    if level == ComplexityLevel.PORTRAIT:
        return configured + 1
    if level == ComplexityLevel.COMPLEX:
        return configured + 2
    return configured


class SegmentationDriver:
    """Runs GrabCut with rectangle or trimap initialization."""

    def __init__(self, iterations: int = 5, border_size: int = 10,
                 saliency_detector: Optional[SaliencyDetector] = None,
                 logger: Optional[logging.Logger] = None):
        self.iterations = iterations
        self.border_size = border_size
        self.logger = logger or logging.getLogger(__name__)
        self.saliency_detector = saliency_detector or SaliencyDetector(logger=self.logger)

    def border_rect(self, width: int, height: int) -> Rect:
        """
        Rectangle inset from the frame by the configured border.

        The border shrinks on small images so the rectangle keeps a positive
        size and at least one background pixel remains on every side.
        """
        border = self.border_size
        if border < MIN_BORDER:
            border = int(width * BORDER_FALLBACK)
        border = max(1, min(border, (min(width, height) - 1) // 2 - 1))
        return border, border, width - 2 * border, height - 2 * border

    def segment(self, image: np.ndarray, complexity: ComplexityInfo,
                saliency_map: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Segment an image at working resolution.

        Args:
            image: BGR image
            complexity: Scene classification of ``image``
            saliency_map: Precomputed binary saliency map; computed on demand
                for non-simple scenes when omitted

        Returns:
            GrabCut trimap (GC_BGD, GC_FGD, GC_PR_BGD, GC_PR_FGD)
        """
        height, width = image.shape[:2]
        iterations = iterations_for(complexity.level, self.iterations)

        bgd_model = np.zeros((1, 65), np.float64)
        fgd_model = np.zeros((1, 65), np.float64)

        if complexity.level == ComplexityLevel.SIMPLE:
            rect = self.border_rect(width, height)
            return self._run_rect(image, rect, bgd_model, fgd_model, iterations)

        if saliency_map is None:
            saliency_map = self.saliency_detector.detect(image)
        mask = self.saliency_detector.create_mask(saliency_map, width, height)

        if np.any(mask == cv2.GC_PR_FGD):
            self.logger.debug("grabcut: mask init, %d iterations", iterations)
            cv2.grabCut(image, mask, None, bgd_model, fgd_model, iterations, cv2.GC_INIT_WITH_MASK)
        else:
            # Nothing salient to learn a foreground model from
            rect = self.saliency_detector.extract_rect(saliency_map, width, height)
            mask = self._run_rect(image, rect, bgd_model, fgd_model, iterations)

        # Continue from the converged models to settle trimap noise
        self.logger.debug("grabcut: refinement pass, %d iterations", REFINE_ITERATIONS)
        cv2.grabCut(image, mask, None, bgd_model, fgd_model, REFINE_ITERATIONS, cv2.GC_EVAL)
        return mask

    def _run_rect(self, image, rect, bgd_model, fgd_model, iterations):
        height, width = image.shape[:2]
        mask = np.zeros((height, width), np.uint8)
        self.logger.debug("grabcut: rect init %s, %d iterations", rect, iterations)
        cv2.grabCut(image, mask, rect, bgd_model, fgd_model, iterations, cv2.GC_INIT_WITH_RECT)
        return mask
