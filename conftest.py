"""Shared fixtures: synthetic images and test settings."""

import cv2
import numpy as np
import pytest

from layering.config import Settings

# Typical skin tone in BGR; lands inside the YCrCb skin band
SKIN_BGR = (120, 160, 200)


def square_image(size=400, square=100, background=255, foreground=0):
    """White canvas with a centred dark square."""
    img = np.full((size, size, 3), background, dtype=np.uint8)
    start = (size - square) // 2
    img[start:start + square, start:start + square] = foreground
    return img


def encode_png(img) -> bytes:
    ok, buf = cv2.imencode('.png', img)
    assert ok
    return buf.tobytes()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        upload_dir=str(tmp_path / "uploads"),
        queue_timeout=5.0,
        redis_url="redis://localhost:6379/15",
    )


@pytest.fixture
def white_square():
    return square_image()


@pytest.fixture
def skin_image():
    img = np.zeros((200, 200, 3), dtype=np.uint8)
    img[:] = SKIN_BGR
    return img


@pytest.fixture
def textured_image():
    """Noisy, colourful scene that classifies as complex."""
    rng = np.random.default_rng(7)
    img = rng.integers(0, 256, size=(240, 320, 3), dtype=np.uint8)
    cv2.rectangle(img, (100, 60), (220, 180), (0, 0, 255), -1)
    return img
