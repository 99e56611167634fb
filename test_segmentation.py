"""
Tests for the GrabCut driver: initialization mode and iteration budgets.
"""

import cv2
import numpy as np
import pytest

from layering.models import ComplexityInfo, ComplexityLevel
from layering.segmentation import SegmentationDriver, iterations_for


def _info(level: ComplexityLevel) -> ComplexityInfo:
    return ComplexityInfo(
        level=level,
        edge_density=0.1,
        color_variance=40.0,
        is_portrait=level == ComplexityLevel.PORTRAIT,
    )


@pytest.mark.parametrize("level, configured, expected", [
    (ComplexityLevel.SIMPLE, 5, 3),
    (ComplexityLevel.SIMPLE, 8, 6),
    (ComplexityLevel.SIMPLE, 2, 3),
    (ComplexityLevel.MEDIUM, 5, 5),
    (ComplexityLevel.PORTRAIT, 5, 6),
    (ComplexityLevel.COMPLEX, 5, 7),
])
def test_iterations_for(level, configured, expected):
    assert iterations_for(level, configured) == expected


def test_border_rect_uses_configured_border():
    driver = SegmentationDriver(border_size=12)
    assert driver.border_rect(400, 300) == (12, 12, 376, 276)


def test_border_rect_falls_back_to_five_percent():
    driver = SegmentationDriver(border_size=4)
    assert driver.border_rect(400, 300) == (20, 20, 360, 260)


@pytest.mark.parametrize("width, height, expected", [
    (20, 20, (8, 8, 4, 4)),
    (40, 20, (8, 8, 24, 4)),
    (12, 12, (4, 4, 4, 4)),
    (4, 4, (1, 1, 2, 2)),
])
def test_border_rect_shrinks_on_small_images(width, height, expected):
    driver = SegmentationDriver(border_size=10)

    x, y, w, h = driver.border_rect(width, height)

    assert (x, y, w, h) == expected
    assert w > 0 and h > 0
    assert x >= 1 and y >= 1 and x + w < width and y + h < height


class _GrabCutRecorder:
    """Stands in for cv2.grabCut and records each call."""

    def __init__(self):
        self.calls = []

    def __call__(self, img, mask, rect, bgd, fgd, iterations, mode):
        self.calls.append({
            'rect': rect,
            'iterations': iterations,
            'mode': mode,
            'seed': mask.copy(),
        })
        if mode == cv2.GC_INIT_WITH_RECT:
            x, y, w, h = rect
            mask[:] = cv2.GC_BGD
            mask[y:y + h, x:x + w] = cv2.GC_PR_FGD
        return mask, bgd, fgd


@pytest.fixture
def recorder(monkeypatch):
    rec = _GrabCutRecorder()
    monkeypatch.setattr(cv2, "grabCut", rec)
    return rec


def test_simple_scene_uses_rect_without_refinement(recorder, white_square):
    driver = SegmentationDriver(iterations=5, border_size=10)

    trimap = driver.segment(white_square, _info(ComplexityLevel.SIMPLE))

    assert len(recorder.calls) == 1
    call = recorder.calls[0]
    assert call['mode'] == cv2.GC_INIT_WITH_RECT
    assert call['rect'] == (10, 10, 380, 380)
    assert call['iterations'] == 3
    assert trimap.shape == white_square.shape[:2]


@pytest.mark.parametrize("level, expected_iterations", [
    (ComplexityLevel.MEDIUM, 5),
    (ComplexityLevel.COMPLEX, 7),
    (ComplexityLevel.PORTRAIT, 6),
])
def test_non_simple_scene_uses_trimap_then_refines(recorder, white_square, level, expected_iterations):
    driver = SegmentationDriver(iterations=5)

    driver.segment(white_square, _info(level))

    assert [c['mode'] for c in recorder.calls] == [cv2.GC_INIT_WITH_MASK, cv2.GC_EVAL]
    assert recorder.calls[0]['iterations'] == expected_iterations
    assert recorder.calls[1]['iterations'] == 2
    seed = recorder.calls[0]['seed']
    assert np.any(seed == cv2.GC_PR_FGD)
    assert np.all(seed[0, :] == cv2.GC_BGD)


def test_empty_saliency_falls_back_to_salient_rect(recorder, white_square):
    driver = SegmentationDriver(iterations=5)
    empty_map = np.zeros(white_square.shape[:2], dtype=np.uint8)

    driver.segment(white_square, _info(ComplexityLevel.MEDIUM), saliency_map=empty_map)

    modes = [c['mode'] for c in recorder.calls]
    assert modes == [cv2.GC_INIT_WITH_RECT, cv2.GC_EVAL]
    # No salient region: centred crop inset 10% from each edge
    assert recorder.calls[0]['rect'] == (40, 40, 320, 320)


def test_segment_returns_trimap_values(white_square):
    driver = SegmentationDriver(iterations=5)
    info = ComplexityInfo(ComplexityLevel.SIMPLE, 0.0, 10.0, False)

    trimap = driver.segment(white_square, info)

    assert set(np.unique(trimap)).issubset({0, 1, 2, 3})
    # The dark square lands in the foreground
    assert trimap[200, 200] in (cv2.GC_FGD, cv2.GC_PR_FGD)
    assert trimap[5, 5] == cv2.GC_BGD
