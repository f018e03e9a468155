"""
Utilities for measuring compression performance and image quality.
"""
import time
import logging
import numpy as np
import psutil
from typing import Tuple, Optional, Dict
from skimage.metrics import peak_signal_noise_ratio, structural_similarity

from forumkit.core.errors import CompressionError
from forumkit.core.raster import PillowSurface, RasterSurface
from forumkit.models.photo import CompressionOutput

# Set up logging
logger = logging.getLogger(__name__)

# SSIM needs at least a 7x7 window
_MIN_SSIM_SIDE = 7


def get_cpu_mem() -> Dict[str, float]:
    """
    Get current CPU and memory usage.

    Returns:
        Dictionary with CPU and memory usage percentages
    """
    return {
        "cpu_usage": psutil.cpu_percent(interval=None),
        "memory_usage": psutil.virtual_memory().percent
    }


def calculate_image_metrics(
    reference: np.ndarray,
    candidate: np.ndarray
) -> Tuple[Optional[float], Optional[float]]:
    """
    Calculate PSNR and SSIM between two RGB uint8 arrays of the same shape.

    Returns:
        Tuple of (PSNR, SSIM) rounded to 2 and 4 decimal places.
        PSNR is capped at 100.0 for identical images; SSIM is None when
        the image is too small for the SSIM window.
    """
    if reference.shape != candidate.shape:
        logger.warning(f"Image shapes don't match: {reference.shape} vs {candidate.shape}")
        return None, None

    mse = np.mean(np.square(reference.astype(np.float32) - candidate.astype(np.float32)))
    if mse < 1e-10:
        psnr = 100.0
    else:
        psnr = float(peak_signal_noise_ratio(reference, candidate, data_range=255))

    ssim = None
    if min(reference.shape[0], reference.shape[1]) >= _MIN_SSIM_SIDE:
        ssim = round(float(structural_similarity(reference, candidate, data_range=255, channel_axis=2)), 4)

    return round(psnr, 2), ssim


def measure_output_quality(
    source: RasterSurface,
    result: CompressionOutput
) -> Tuple[Optional[float], Optional[float]]:
    """
    Compare the compressed main image with the source resized to the same box.

    Both sides are flattened onto white before comparison so transparent
    pixels do not skew the score.
    """
    try:
        reference = source.resized(result.width, result.height)
        decoded = PillowSurface.decode(result.blob)
    except CompressionError as e:
        logger.error(f"Could not decode images for quality metrics: {e}")
        return None, None

    if not isinstance(reference, PillowSurface):
        return None, None
    return calculate_image_metrics(
        np.array(reference.flattened()),
        np.array(decoded.flattened())
    )


class PerformanceTimer:
    """
    Context manager for measuring execution time.

    Example:
        with PerformanceTimer() as timer:
            # Code to measure
        execution_time = timer.execution_time
    """

    def __init__(self):
        self.start_time = None
        self.execution_time = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.execution_time = time.perf_counter() - self.start_time
        return False  # Don't suppress exceptions
