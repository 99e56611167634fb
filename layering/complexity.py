"""
Scene complexity classification.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from image_processing import canny_edges, nonzero_ratio
from layering.models import ComplexityInfo, ComplexityLevel
from layering.portrait import PortraitDetector

# Canny thresholds used for edge density
EDGE_LOW = 50
EDGE_HIGH = 150

SIMPLE_EDGE_DENSITY = 0.05
SIMPLE_COLOR_VARIANCE = 30.0
COMPLEX_EDGE_DENSITY = 0.15
COMPLEX_COLOR_VARIANCE = 60.0


def classify_level(edge_density: float, color_variance: float, is_portrait: bool) -> ComplexityLevel:
    """Map scene measurements to a level; first matching rule wins."""
    if is_portrait:
        return ComplexityLevel.PORTRAIT
    if edge_density < SIMPLE_EDGE_DENSITY and color_variance < SIMPLE_COLOR_VARIANCE:
        return ComplexityLevel.SIMPLE
    if edge_density > COMPLEX_EDGE_DENSITY or color_variance > COMPLEX_COLOR_VARIANCE:
        return ComplexityLevel.COMPLEX
    return ComplexityLevel.MEDIUM


class ComplexityAnalyzer:
    """Scores edge density, Lab colour spread and skin coverage of an image."""

    def __init__(self, portrait_detector: Optional[PortraitDetector] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.portrait_detector = portrait_detector or PortraitDetector(logger=self.logger)

    def analyze(self, image: np.ndarray) -> ComplexityInfo:
        edge_density = self.edge_density(image)
        color_variance = self.color_variance(image)
        is_portrait = self.portrait_detector.is_portrait(image)

        level = classify_level(edge_density, color_variance, is_portrait)
        self.logger.debug(
            "complexity: level=%s edge_density=%.4f color_variance=%.2f",
            level.value, edge_density, color_variance,
        )
        return ComplexityInfo(
            level=level,
            edge_density=edge_density,
            color_variance=color_variance,
            is_portrait=is_portrait,
        )

    def edge_density(self, image: np.ndarray) -> float:
        return nonzero_ratio(canny_edges(image, EDGE_LOW, EDGE_HIGH))

    def color_variance(self, image: np.ndarray) -> float:
        """Mean of the per-channel standard deviations in Lab space."""
        lab = cv2.cvtColor(image, cv2.COLOR_BGR2Lab)
        _, stddev = cv2.meanStdDev(lab)
        return float(np.mean(stddev))
