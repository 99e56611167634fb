"""
GrabCut layering service.

Coordinates one image through the adaptive pipeline:

    slot -> load -> resize -> classify -> segment -> foreground mask
    -> [portrait enhance + detail refine] -> morphology -> [edge refine]
    -> rescale -> [keep largest] -> bounding box + confidence -> layers

Bracketed steps depend on the scene class and the caller's options.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from image_processing import (
    MAX_DIMENSION, decode_image, encode_png_base64, external_contours, resize_to
)
from layering.complexity import ComplexityAnalyzer
from layering.config import Settings
from layering.errors import ImageDecodeError, ProcessingError
from layering.mask import MaskProcessor, kernel_size_for
from layering.models import (
    BoundingBox, ComplexityLevel, Layer, LayerResult, LayerType,
)
from layering.portrait import PortraitDetector
from layering.saliency import SaliencyDetector
from layering.segmentation import SegmentationDriver
from layering.slots import SlotPool

MIN_CONFIDENCE = 0.05
MAX_CONFIDENCE = 0.95

ImageSource = Union[str, Path, bytes]


def smart_resize(image: np.ndarray, max_dimension: int = MAX_DIMENSION) -> Tuple[np.ndarray, float]:
    """
    Shrink an image so its longer side is at most ``max_dimension``.

    Returns:
        (image, scale); the input itself with scale 1.0 when it already fits
    """
    height, width = image.shape[:2]
    longest = max(width, height)
    if longest <= max_dimension:
        return image, 1.0

    scale = max_dimension / float(longest)
    new_width = max(1, int(round(width * scale)))
    new_height = max(1, int(round(height * scale)))
    return resize_to(image, new_width, new_height, cv2.INTER_AREA), scale


def compute_bounding_box(mask: np.ndarray) -> BoundingBox:
    """Union of the bounding rectangles of all foreground regions."""
    contours = external_contours(mask)
    if not contours:
        return BoundingBox()

    rects = [cv2.boundingRect(c) for c in contours]
    x0 = min(x for x, _, _, _ in rects)
    y0 = min(y for _, y, _, _ in rects)
    x1 = max(x + w for x, _, w, _ in rects)
    y1 = max(y + h for _, y, _, h in rects)
    return BoundingBox(x=int(x0), y=int(y0), width=int(x1 - x0), height=int(y1 - y0))


def compute_confidence(mask: np.ndarray, width: int, height: int) -> float:
    """Foreground coverage clamped to [0.05, 0.95]."""
    total = width * height
    ratio = float(cv2.countNonZero(mask)) / total if total else 0.0
    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, ratio))


def load_image(source: ImageSource) -> np.ndarray:
    """
    Read a BGR image from a path or from encoded bytes.

    Raises:
        ImageDecodeError: If the source cannot be read or decoded
    """
    if isinstance(source, (bytes, bytearray)):
        image = decode_image(bytes(source))
    else:
        image = cv2.imread(str(source), cv2.IMREAD_COLOR)

    if image is None or image.size == 0:
        label = "image bytes" if isinstance(source, (bytes, bytearray)) else str(source)
        raise ImageDecodeError(f"Cannot read image from {label}")
    return image


class GrabCutService:
    """Turns images into foreground/background layer results."""

    def __init__(self, settings: Settings, logger: Optional[logging.Logger] = None):
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)
        self.slots = SlotPool(settings.max_concurrent, settings.queue_timeout, logger=self.logger)

        self.portrait_detector = PortraitDetector(settings.face_cascade_path, logger=self.logger)
        self.complexity_analyzer = ComplexityAnalyzer(self.portrait_detector, logger=self.logger)
        self.saliency_detector = SaliencyDetector(logger=self.logger)
        self.segmentation_driver = SegmentationDriver(
            iterations=settings.iterations,
            border_size=settings.border_size,
            saliency_detector=self.saliency_detector,
            logger=self.logger,
        )
        self.mask_processor = MaskProcessor(logger=self.logger)

    def process_image(self, source: ImageSource, md5: str,
                      max_foreground_only: bool = False) -> LayerResult:
        """
        Split an image into foreground and background layers.

        Args:
            source: Image path or encoded image bytes
            md5: Content fingerprint of the image, echoed in the result
            max_foreground_only: Keep only the largest foreground region

        Returns:
            LayerResult with foreground (id 1) and background (id 2) layers

        Raises:
            QueueFullError: If no slot frees up within the queue timeout
            ProcessingError: If the image cannot be decoded or segmented
        """
        with self.slots.slot():
            try:
                return self._run(source, md5, max_foreground_only)
            except ProcessingError:
                raise
            except (cv2.error, ValueError) as e:
                self.logger.error("processing failure for %s: %s", md5, e)
                raise ProcessingError(f"Image processing failed: {e}") from e

    def _run(self, source: ImageSource, md5: str, max_foreground_only: bool) -> LayerResult:
        start = time.monotonic()

        image = load_image(source)
        height, width = image.shape[:2]
        self.logger.info(
            "processing image md5=%s width=%d height=%d active_slots=%d",
            md5, width, height, self.slots.active,
        )

        working, scale = smart_resize(image, self.settings.max_dimension)

        complexity = self.complexity_analyzer.analyze(working)
        self.logger.info(
            "scene analyzed md5=%s level=%s is_portrait=%s",
            md5, complexity.level.value, complexity.is_portrait,
        )
        if complexity.is_portrait and self.settings.face_detection:
            faces = self.portrait_detector.detect_faces(working)
            self.logger.info("faces detected md5=%s count=%d", md5, len(faces))

        trimap = self.segmentation_driver.segment(working, complexity)
        fg_mask = self.mask_processor.extract_foreground(trimap)

        if complexity.is_portrait:
            fg_mask = self.portrait_detector.enhance_portrait_mask(fg_mask, working)
            fg_mask = self.mask_processor.detail_preserving_refine(fg_mask, working)

        fg_mask = self.mask_processor.morphology_optimize(fg_mask, kernel_size_for(complexity.level))

        if complexity.level != ComplexityLevel.SIMPLE:
            fg_mask = self.mask_processor.refine_edges(fg_mask)

        if scale != 1.0:
            fg_mask = self.mask_processor.rescale(fg_mask, width, height)

        if max_foreground_only:
            fg_mask = self.mask_processor.keep_largest(fg_mask)

        result = self._build_result(md5, fg_mask, width, height)

        self.logger.info(
            "image processed md5=%s duration=%.3fs foreground_confidence=%.3f complexity=%s",
            md5, time.monotonic() - start, result.foreground.confidence, complexity.level.value,
        )
        return result

    def _build_result(self, md5: str, fg_mask: np.ndarray, width: int, height: int) -> LayerResult:
        bg_mask = cv2.bitwise_not(fg_mask)
        fg_confidence = compute_confidence(fg_mask, width, height)

        return LayerResult(
            md5=md5,
            width=width,
            height=height,
            timestamp=int(time.time()),
            layers=[
                Layer(
                    id=1,
                    type=LayerType.FOREGROUND,
                    bounding_box=compute_bounding_box(fg_mask),
                    mask=encode_png_base64(fg_mask),
                    confidence=fg_confidence,
                ),
                Layer(
                    id=2,
                    type=LayerType.BACKGROUND,
                    bounding_box=BoundingBox(0, 0, width, height),
                    mask=encode_png_base64(bg_mask),
                    confidence=1.0 - fg_confidence,
                ),
            ],
        )
