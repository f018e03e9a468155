"""
Models for photo compression, quota and storage.

``CompressionInput`` and ``CompressionOutput`` are the immutable records
passed in and out of the compression pipeline. The remaining models
describe the HTTP API request and response bodies.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from forumkit.models.base import BaseMetrics


class CompressionInput(BaseModel):
    """A user supplied image waiting to be compressed"""
    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Raw image bytes")
    mime_type: str = Field(..., description="Declared MIME type")
    size: int = Field(..., ge=0, description="Original size in bytes")
    file_name: str = Field(..., description="Original file name")

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str, file_name: str) -> "CompressionInput":
        return cls(data=data, mime_type=mime_type or "", size=len(data), file_name=file_name or "")


class CompressionOutput(BaseModel):
    """Result of a single compression call"""
    model_config = ConfigDict(frozen=True)

    blob: bytes
    thumbnail: bytes
    mime_type: str
    width: int
    height: int
    original_size: int
    compressed_size: int
    thumbnail_size: int
    file_name: str
    quality: Optional[float] = Field(
        None, description="JPEG quality the main image was encoded at (None for PNG)"
    )


class PhotoLimits(BaseModel):
    """Upload limits for a role"""
    model_config = ConfigDict(frozen=True)

    per_upload: int
    total: int


class PhotoQuota(BaseModel):
    """Photo quota for a user"""
    total_photos: int = Field(..., description="Photos the user has already uploaded")
    max_total: int = Field(..., description="Lifetime photo limit for the role")
    max_per_upload: int = Field(..., description="Maximum photos in a single upload")
    remaining: int = Field(..., description="Photos the user can still upload")


class ValidationResponse(BaseModel):
    """Pre-flight validation result"""
    valid: bool
    error: Optional[str] = None


class StoragePathsResponse(BaseModel):
    """Object store locations for a compressed photo"""
    path: str = Field(..., description="Path of the main image")
    thumbnail_path: str = Field(..., description="Path of the thumbnail")


class PhotoCompressionResponse(BaseMetrics):
    """Response model for a compressed photo"""
    file_name: str = Field(..., description="Sanitized output file name")
    mime_type: str = Field(..., description="Output MIME type")
    width: int = Field(..., description="Width of the main image in pixels")
    height: int = Field(..., description="Height of the main image in pixels")
    original_size: int = Field(..., description="Size of the uploaded file in bytes")
    compressed_size: int = Field(..., description="Size of the main image in bytes")
    thumbnail_size: int = Field(..., description="Size of the thumbnail in bytes")
    compression_ratio: float = Field(..., description="original_size / compressed_size")
    compression_time: float = Field(..., description="Time taken for compression in seconds")
    readable_size: str = Field(..., description="Compressed size formatted for display")
    storable: bool = Field(..., description="Whether the main image fits the storage ceiling")
    psnr: Optional[float] = Field(None, description="PSNR of the main image against the resized source")
    ssim: Optional[float] = Field(None, description="SSIM of the main image against the resized source")
    storage: StoragePathsResponse
    image_base64: str = Field(..., description="Base64 encoded main image")
    thumbnail_base64: str = Field(..., description="Base64 encoded thumbnail")


class PhotoBatchResult(BaseModel):
    """Result model for a single file in a batch"""
    original_filename: str = Field(..., description="Original filename")
    status: str = Field(..., description="Status of the compression (success/failed)")
    error: Optional[str] = Field(None, description="Error message if compression failed")
    photo: Optional[PhotoCompressionResponse] = None


class PhotoBatchResponse(BaseModel):
    """Response model for batch compression results"""
    results: List[PhotoBatchResult] = Field(..., description="Compression results for each file")
    successful_count: int = Field(..., description="Number of successfully compressed files")
    failed_count: int = Field(..., description="Number of failed files")
    total_original_size: int = Field(..., description="Total size of all original files in bytes")
    total_compressed_size: int = Field(..., description="Total size of all main images in bytes")
    total_time: float = Field(..., description="Total time taken for all compressions in seconds")
