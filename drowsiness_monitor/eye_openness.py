"""
Eye Openness Scoring Module
Heuristic eye-openness score computed from an eye-region image (no learned model)

Open eyes show white sclera (bright regions) and eyelid/iris contours
(edges); closed eyes show neither. The score is the average of the
bright-pixel ratio and the edge-pixel ratio, clamped to [0, 1]. Lower
values are more likely to correspond to closed eyes. Tune
EYE_OPEN_THRESHOLD in config.py for your camera rather than the
constants below.
"""

import cv2
import numpy as np

# Untuned defaults; flagged for recalibration.
CLAHE_TILE_GRID = (4, 2)          # tile rows, tile columns
CLAHE_CLIP_LIMIT = 0.01           # normalized: fraction of a tile's pixels per bin
CLAHE_BINS = 256
ADAPTIVE_SENSITIVITY = 0.4        # 0..1, higher => more pixels count as bright
MIN_REGION_AREA = 10              # bright regions smaller than this are noise
BRIGHT_WEIGHT = 0.5
EDGE_WEIGHT = 0.5
EDGE_CUTOFF_SCALE = 4.0           # cutoff = scale * mean squared gradient


def to_unit_gray(image):
    """
    Convert an image of any channel depth to single-channel float32 in [0, 1].

    Args:
        image: HxW, HxWx1, HxWx3 (BGR) or HxWx4 (BGRA) array

    Returns:
        HxW float32 array
    """
    img = np.asarray(image)
    if img.dtype == np.bool_:
        img = img.astype(np.float32)
    elif np.issubdtype(img.dtype, np.integer):
        img = img.astype(np.float32) / float(np.iinfo(img.dtype).max)
    else:
        img = np.clip(np.nan_to_num(img.astype(np.float32)), 0.0, 1.0)

    if img.ndim == 3:
        channels = img.shape[2]
        if channels == 3:
            img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        elif channels == 4:
            img = cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
        else:
            img = img[:, :, 0]
    elif img.ndim != 2:
        raise ValueError(f"Expected a 2-D or 3-D image, got shape {img.shape}")

    return np.ascontiguousarray(img, dtype=np.float32)


def enhance_contrast(gray):
    """
    Contrast-limited adaptive histogram equalization on a [0, 1] image.

    Images too small to be split into the tile grid are returned unchanged.
    """
    rows, cols = CLAHE_TILE_GRID
    h, w = gray.shape
    if h < 2 * rows or w < 2 * cols:
        return gray

    # OpenCV's clip limit is relative to the uniform bin height.
    clip = 1.0 + CLAHE_CLIP_LIMIT * (CLAHE_BINS - 1)
    clahe = cv2.createCLAHE(clipLimit=clip, tileGridSize=(cols, rows))
    as_u8 = np.round(gray * 255.0).astype(np.uint8)
    return clahe.apply(as_u8).astype(np.float32) / 255.0


def adaptive_threshold(gray, sensitivity=ADAPTIVE_SENSITIVITY):
    """
    Per-pixel threshold from the local mean over a neighbourhood of about
    1/8 of the image size in each dimension.

    Returns:
        HxW float32 threshold map in [0, 1]
    """
    h, w = gray.shape
    kh = 2 * (h // 16) + 1
    kw = 2 * (w // 16) + 1
    local_mean = cv2.blur(gray, (kw, kh), borderType=cv2.BORDER_REPLICATE)
    scale = 0.6 + (1.0 - sensitivity)
    return np.clip(local_mean * scale, 0.0, 1.0)


def remove_small_regions(mask, min_area=MIN_REGION_AREA):
    """Drop 8-connected True regions with fewer than min_area pixels."""
    if not mask.any():
        return mask
    _, labels, stats, _ = cv2.connectedComponentsWithStats(
        mask.astype(np.uint8), connectivity=8
    )
    keep = stats[:, cv2.CC_STAT_AREA] >= min_area
    keep[0] = False  # background
    return keep[labels]


def sobel_edges(gray):
    """
    Thinned Sobel edge map with an automatic cutoff.

    A pixel is an edge when its squared gradient magnitude exceeds the
    cutoff and is a local maximum across the dominant gradient direction.
    Plateaus two pixels wide (a step edge) keep only their far pixel.
    """
    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3, borderType=cv2.BORDER_REPLICATE)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3, borderType=cv2.BORDER_REPLICATE)
    mag = gx * gx + gy * gy

    cutoff = EDGE_CUTOFF_SCALE * mag.mean()
    if cutoff <= 0.0:
        return np.zeros(gray.shape, dtype=bool)

    p = np.pad(mag, 1, mode="edge")
    left, right = p[1:-1, :-2], p[1:-1, 2:]
    up, down = p[:-2, 1:-1], p[2:, 1:-1]

    ax, ay = np.abs(gx), np.abs(gy)
    horizontal_max = (ax >= ay) & (left <= mag) & (mag > right)
    vertical_max = (ay >= ax) & (up <= mag) & (mag > down)
    return (mag > cutoff) & (horizontal_max | vertical_max)


def score_eye_openness(eye_image):
    """
    Compute the eye-openness score for an eye-region image.

    Args:
        eye_image: Non-empty eye region, grayscale or colour, any dtype

    Returns:
        Score in [0, 1]

    Raises:
        ValueError: If the image has no pixels
    """
    if np.asarray(eye_image).size == 0:
        raise ValueError("Eye image is empty")
    gray = to_unit_gray(eye_image)

    enhanced = enhance_contrast(gray)

    bright = enhanced > adaptive_threshold(enhanced)
    bright = remove_small_regions(bright)
    bright_ratio = np.count_nonzero(bright) / bright.size

    edges = sobel_edges(enhanced)
    edge_ratio = np.count_nonzero(edges) / edges.size

    combined = BRIGHT_WEIGHT * bright_ratio + EDGE_WEIGHT * edge_ratio
    return float(min(max(combined, 0.0), 1.0))
