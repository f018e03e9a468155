"""
Utilities for naming stored photos and processing upload batches.
"""
import os
import string
import secrets
import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Awaitable, Callable, List, NamedTuple, Optional

from forumkit import config
from forumkit.core.compression import sanitize_base_name, sanitize_segment

# Set up logging
logger = logging.getLogger(__name__)

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class StoragePaths(NamedTuple):
    path: str
    thumbnail_path: str


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def build_storage_paths(
    user_id: str,
    file_name: str,
    now: Optional[datetime] = None,
    suffix: Optional[str] = None,
) -> StoragePaths:
    """
    Build object store paths for a photo and its thumbnail.

    Layout: photos/{year}/{month}/{user_id}/{base}-{timestamp_ms}-{suffix}.{ext}
    The thumbnail sits next to it with a "thumb-" prefix and is always JPEG.

    Args:
        user_id: Uploader ID
        file_name: Sanitized output file name from the compressor
        now: Upload time (defaults to the current UTC time)
        suffix: Random disambiguator (generated if not provided)
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if suffix is None:
        suffix = random_suffix()

    _, ext = os.path.splitext(file_name)
    ext = sanitize_segment(ext.lstrip(".").lower()) or "jpg"
    base = sanitize_base_name(file_name)
    timestamp = int(now.timestamp() * 1000)

    # The uploader ID comes from a request header and must stay one segment
    owner = sanitize_segment(user_id) or "anonymous"
    folder = f"{config.STORAGE_ROOT}/{now.year}/{now.month:02d}/{owner}"
    stem = f"{base}-{timestamp}-{suffix}"
    return StoragePaths(
        path=f"{folder}/{stem}.{ext}",
        thumbnail_path=f"{folder}/thumb-{stem}.jpg",
    )


def format_file_size(size: int) -> str:
    """Format a byte count as 512B, 1.5KB or 2.0MB."""
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.1f}MB"


async def process_in_batches(
    items: List[Any],
    batch_size: int,
    processor: Callable[[Any], Awaitable[Any]]
) -> AsyncGenerator[List[Any], None]:
    """
    Process items in batches asynchronously.

    A failing item yields an exception object in its slot instead of
    aborting the rest of the batch.

    Args:
        items: List of items to process
        batch_size: Size of each batch
        processor: Coroutine function applied to each item

    Yields:
        Results from each batch
    """
    for i in range(0, len(items), batch_size):
        batch = items[i:i + batch_size]
        results = []
        for item in batch:
            try:
                results.append(await processor(item))
            except Exception as e:
                logger.error(f"Error processing item {i + len(results)}: {e}")
                results.append(e)

        yield results
