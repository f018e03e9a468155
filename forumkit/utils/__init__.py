"""
Utility functions for the forum media service.
"""
from forumkit.utils.metrics import (
    get_cpu_mem,
    calculate_image_metrics,
    measure_output_quality,
    PerformanceTimer
)

from forumkit.utils.file_handling import (
    StoragePaths,
    build_storage_paths,
    format_file_size,
    process_in_batches
)

__all__ = [
    # Metrics utilities
    'get_cpu_mem',
    'calculate_image_metrics',
    'measure_output_quality',
    'PerformanceTimer',

    # File handling utilities
    'StoragePaths',
    'build_storage_paths',
    'format_file_size',
    'process_in_batches'
]
