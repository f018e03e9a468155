"""
Per-role photo upload quotas.
"""
from typing import Dict, Optional

from forumkit import config
from forumkit.models.photo import PhotoLimits, PhotoQuota

DEFAULT_ROLE = "member"

PHOTO_LIMITS: Dict[str, PhotoLimits] = {
    "member": PhotoLimits(per_upload=5, total=50),
    "guide": PhotoLimits(per_upload=10, total=200),
    "moderator": PhotoLimits(per_upload=15, total=500),
    "admin": PhotoLimits(per_upload=15, total=500),
}


def get_photo_limits(role: Optional[str]) -> PhotoLimits:
    """Limits for ``role``; unknown or missing roles get member limits."""
    return PHOTO_LIMITS.get((role or DEFAULT_ROLE).lower(), PHOTO_LIMITS[DEFAULT_ROLE])


def get_photo_quota(role: Optional[str], total_photos: int) -> PhotoQuota:
    limits = get_photo_limits(role)
    return PhotoQuota(
        total_photos=total_photos,
        max_total=limits.total,
        max_per_upload=limits.per_upload,
        remaining=max(0, limits.total - total_photos),
    )


def check_upload_batch(role: Optional[str], current_total: int, file_count: int) -> Optional[str]:
    """
    Decide whether a batch of ``file_count`` photos may be uploaded.

    Returns:
        A user facing error message, or None if the batch fits the quota
    """
    limits = get_photo_limits(role)

    if file_count <= 0:
        return "No files selected."
    if file_count > limits.per_upload:
        return f"Maximum {limits.per_upload} photos per upload for your role."
    if current_total + file_count > limits.total:
        remaining = max(0, limits.total - current_total)
        plural = "" if remaining == 1 else "s"
        return (
            f"You can only upload {remaining} more photo{plural}. "
            f"Your limit is {limits.total} total photos."
        )
    return None


def is_storable(size: int) -> bool:
    """Whether a compressed photo fits the server-side storage ceiling."""
    return size <= config.MAX_STORED_BYTES
