"""
Tests for scene complexity classification.
"""

import numpy as np
import pytest

from layering.complexity import ComplexityAnalyzer, classify_level
from layering.models import ComplexityLevel


@pytest.mark.parametrize("edge_density, color_variance, is_portrait, expected", [
    (0.01, 10.0, True, ComplexityLevel.PORTRAIT),
    (0.50, 90.0, True, ComplexityLevel.PORTRAIT),
    (0.01, 10.0, False, ComplexityLevel.SIMPLE),
    (0.049, 29.9, False, ComplexityLevel.SIMPLE),
    (0.05, 10.0, False, ComplexityLevel.MEDIUM),
    (0.01, 30.0, False, ComplexityLevel.MEDIUM),
    (0.15, 60.0, False, ComplexityLevel.MEDIUM),
    (0.16, 10.0, False, ComplexityLevel.COMPLEX),
    (0.01, 61.0, False, ComplexityLevel.COMPLEX),
])
def test_classify_level_rules(edge_density, color_variance, is_portrait, expected):
    assert classify_level(edge_density, color_variance, is_portrait) == expected


def test_flat_image_is_simple():
    gray = np.full((120, 160, 3), 90, dtype=np.uint8)

    info = ComplexityAnalyzer().analyze(gray)

    assert info.level == ComplexityLevel.SIMPLE
    assert info.edge_density == 0.0
    assert info.color_variance == pytest.approx(0.0)
    assert not info.is_portrait


def test_white_square_is_simple(white_square):
    info = ComplexityAnalyzer().analyze(white_square)

    assert info.level == ComplexityLevel.SIMPLE
    assert 0.0 < info.edge_density < 0.05
    assert info.color_variance < 30


def test_skin_image_is_portrait(skin_image):
    info = ComplexityAnalyzer().analyze(skin_image)

    assert info.is_portrait
    assert info.level == ComplexityLevel.PORTRAIT


def test_noisy_image_is_complex(textured_image):
    info = ComplexityAnalyzer().analyze(textured_image)

    assert info.level == ComplexityLevel.COMPLEX
    assert 0.0 <= info.edge_density <= 1.0


def test_analyze_is_deterministic(textured_image):
    analyzer = ComplexityAnalyzer()

    first = analyzer.analyze(textured_image)
    second = analyzer.analyze(textured_image.copy())

    assert first == second


def test_portrait_level_matches_flag(skin_image, white_square):
    analyzer = ComplexityAnalyzer()
    for img in (skin_image, white_square):
        info = analyzer.analyze(img)
        assert (info.level == ComplexityLevel.PORTRAIT) == info.is_portrait
