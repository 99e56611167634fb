import base64

import cv2
import numpy as np

# Working resolution cap for the segmentation pipeline
MAX_DIMENSION = 1200

# Re-binarization cut-off for interpolated masks
MASK_THRESHOLD = 127


def to_gray(bgr):
    if len(bgr.shape) == 2:
        return bgr
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)


def ellipse_kernel(size: int):
    return cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (int(size), int(size)))


def rect_kernel(size: int):
    return cv2.getStructuringElement(cv2.MORPH_RECT, (int(size), int(size)))


def canny_edges(bgr, threshold1=100, threshold2=200):
    gray = to_gray(bgr)
    edges = cv2.Canny(gray, threshold1, threshold2)
    return edges


def binary_threshold(gray, threshold=MASK_THRESHOLD):
    _, binary = cv2.threshold(gray, int(threshold), 255, cv2.THRESH_BINARY)
    return binary


def otsu_threshold(gray):
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return binary


def nonzero_ratio(mask) -> float:
    """Fraction of non-zero pixels; 0.0 for an empty buffer."""
    total = mask.shape[0] * mask.shape[1]
    if total == 0:
        return 0.0
    return float(cv2.countNonZero(mask)) / float(total)


def external_contours(mask):
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    return contours


def largest_contour(contours):
    """
    Return (index, area) of the contour with the greatest area.

    Degenerate contours (lines, single pixels) have zero area; the first one
    still wins over nothing so callers always get a usable index.
    """
    best_index, best_area = -1, -1.0
    for i, contour in enumerate(contours):
        area = cv2.contourArea(contour)
        if area > best_area:
            best_index, best_area = i, area
    return best_index, best_area


def resize_to(image, width: int, height: int, interpolation=cv2.INTER_LINEAR):
    return cv2.resize(image, (int(width), int(height)), interpolation=interpolation)


def decode_image(data: bytes):
    """Decode encoded image bytes into a BGR array, or None when undecodable."""
    if not data:
        return None
    buffer = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(buffer, cv2.IMREAD_COLOR)


def encode_png_base64(mask) -> str:
    ok, encoded = cv2.imencode('.png', mask)
    if not ok:
        raise ValueError("Cannot encode mask as PNG")
    return base64.b64encode(encoded.tobytes()).decode('ascii')
