"""
API v1 - photo validation, compression and quota endpoints.
"""
import base64
import asyncio
import logging
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from forumkit import config
from forumkit.api.dependencies import enforce_rate_limit, get_actor, get_rate_limiter, get_role
from forumkit.core.compression import compress_image, compress_image_async, validate_file_size
from forumkit.core.errors import CompressionError, ValidationError
from forumkit.core.quota import check_upload_batch, get_photo_quota, is_storable
from forumkit.core.rate_limit import RateLimiter
from forumkit.core.raster import PillowSurface
from forumkit.models.base import ErrorResponse
from forumkit.models.photo import (
    CompressionInput,
    CompressionOutput,
    PhotoBatchResponse,
    PhotoBatchResult,
    PhotoCompressionResponse,
    PhotoQuota,
    StoragePathsResponse,
    ValidationResponse,
)
from forumkit.utils.file_handling import build_storage_paths, format_file_size, process_in_batches
from forumkit.utils.metrics import PerformanceTimer, get_cpu_mem, measure_output_quality

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/photos", tags=["Photos v1"])

BATCH_SIZE = 4
NOT_STORABLE_MESSAGE = "Compressed photo is still too large to store."


async def read_upload(file: UploadFile) -> CompressionInput:
    # One byte past the ceiling is enough to reject an oversized file
    data = await file.read(config.MAX_INPUT_BYTES + 1)
    size = file.size if file.size is not None else len(data)
    return CompressionInput(
        data=data,
        mime_type=file.content_type or "",
        size=max(size, len(data)),
        file_name=file.filename or "",
    )


def _compress_with_metrics(
    upload: CompressionInput,
    include_metrics: bool
) -> Tuple[CompressionOutput, float, Optional[float], Optional[float]]:
    with PerformanceTimer() as timer:
        result = compress_image(upload)

    psnr, ssim = None, None
    if include_metrics:
        psnr, ssim = measure_output_quality(PillowSurface.decode(upload.data), result)
    return result, timer.execution_time, psnr, ssim


async def _timed_compress(upload: CompressionInput) -> Tuple[CompressionOutput, float]:
    with PerformanceTimer() as timer:
        result = await compress_image_async(upload)
    return result, timer.execution_time


def build_photo_response(
    result: CompressionOutput,
    actor: str,
    compression_time: float,
    psnr: Optional[float] = None,
    ssim: Optional[float] = None
) -> PhotoCompressionResponse:
    storage = build_storage_paths(actor, result.file_name)
    cpu_mem = get_cpu_mem()
    return PhotoCompressionResponse(
        file_name=result.file_name,
        mime_type=result.mime_type,
        width=result.width,
        height=result.height,
        original_size=result.original_size,
        compressed_size=result.compressed_size,
        thumbnail_size=result.thumbnail_size,
        compression_ratio=round(result.original_size / result.compressed_size, 2) if result.compressed_size else 0,
        compression_time=round(compression_time, 4),
        readable_size=format_file_size(result.compressed_size),
        storable=is_storable(result.compressed_size),
        psnr=psnr,
        ssim=ssim,
        storage=StoragePathsResponse(path=storage.path, thumbnail_path=storage.thumbnail_path),
        image_base64=base64.b64encode(result.blob).decode("ascii"),
        thumbnail_base64=base64.b64encode(result.thumbnail).decode("ascii"),
        cpu_usage=cpu_mem["cpu_usage"],
        memory_usage=cpu_mem["memory_usage"],
    )


@router.post("/validate", response_model=ValidationResponse)
async def validate_photo(file: UploadFile = File(...)):
    """
    Run the pre-flight checks (size ceiling and image MIME type) without compressing.
    """
    upload = await read_upload(file)
    error = validate_file_size(upload)
    return ValidationResponse(valid=error is None, error=error)


@router.post(
    "/compress",
    response_model=PhotoCompressionResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 422: {"model": ErrorResponse}}
)
async def compress_photo(
    file: UploadFile = File(...),
    include_metrics: bool = Query(True, description="Compute PSNR/SSIM against the resized source"),
    actor: str = Depends(get_actor),
):
    """
    Compress a single photo and build its thumbnail.

    - **file**: The image to compress
    - **include_metrics**: Whether to compute quality metrics

    Returns:
        Compression statistics, storage paths and both images as Base64
    """
    upload = await read_upload(file)
    logger.info(f"Compressing photo {upload.file_name} ({upload.size} bytes) for {actor}")

    result, compression_time, psnr, ssim = await asyncio.to_thread(
        _compress_with_metrics, upload, include_metrics
    )
    return build_photo_response(result, actor, compression_time, psnr, ssim)


@router.post("/compress/batch", response_model=PhotoBatchResponse, tags=["Batch Operations"])
async def compress_photo_batch(
    files: List[UploadFile] = File(...),
    total_photos: int = Form(0, ge=0, description="Photos the user has already uploaded"),
    actor: str = Depends(get_actor),
    role: str = Depends(get_role),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """
    Compress a batch of photos for one upload.

    The role quota and the photo upload rate limit are checked before any
    work starts. A file that fails to compress is reported on its own and
    does not abort the rest of the batch.
    """
    error = check_upload_batch(role, total_photos, len(files))
    if error:
        raise HTTPException(status_code=400, detail=error)

    enforce_rate_limit(limiter, "PHOTO_UPLOAD", actor)

    uploads = [await read_upload(f) for f in files]

    results: List[PhotoBatchResult] = []
    successful_count = 0
    total_original_size = 0
    total_compressed_size = 0

    with PerformanceTimer() as timer:
        outcomes = []
        async for batch in process_in_batches(uploads, BATCH_SIZE, _timed_compress):
            outcomes.extend(batch)

    for upload, outcome in zip(uploads, outcomes):
        # Failed slots hold the exception instead of a (result, seconds) pair
        compression_time = 0.0
        if isinstance(outcome, tuple):
            outcome, compression_time = outcome

        if isinstance(outcome, CompressionOutput) and not is_storable(outcome.compressed_size):
            outcome = ValidationError(NOT_STORABLE_MESSAGE)

        if isinstance(outcome, CompressionOutput):
            successful_count += 1
            total_original_size += outcome.original_size
            total_compressed_size += outcome.compressed_size
            results.append(PhotoBatchResult(
                original_filename=upload.file_name,
                status="success",
                photo=build_photo_response(outcome, actor, compression_time)
            ))
        else:
            message = str(outcome) if isinstance(outcome, CompressionError) else "Failed to process image."
            logger.warning(f"Failed to compress {upload.file_name}: {outcome}")
            results.append(PhotoBatchResult(
                original_filename=upload.file_name,
                status="failed",
                error=message
            ))

    return PhotoBatchResponse(
        results=results,
        successful_count=successful_count,
        failed_count=len(results) - successful_count,
        total_original_size=total_original_size,
        total_compressed_size=total_compressed_size,
        total_time=round(timer.execution_time, 4)
    )


@router.get("/quota", response_model=PhotoQuota)
async def photo_quota(
    total_photos: int = Query(0, ge=0, description="Photos the user has already uploaded"),
    role: str = Depends(get_role),
):
    """Return the caller's upload limits and remaining allowance."""
    return get_photo_quota(role, total_photos)
