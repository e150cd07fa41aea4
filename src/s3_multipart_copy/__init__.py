from .config import Config, Parsed, Section
from .errors import (
    CollaboratorError,
    CopyCancelled,
    CopyError,
    CopyPartsFailed,
    PartCopyError,
    ValidationError,
)
from .log import configure_logging
from .s3.api import S3Client
from .s3.backend import Boto3Backend, MultipartCopyBackend
from .s3.create import S3Config, create_s3_client
from .s3.multipart.checkpoint import Checkpoint
from .s3.multipart.copy_orchestrator import CopyOptions, CopyState, MultipartCopier
from .s3.multipart.finished_piece import FinishedPiece
from .s3.multipart.job_pool import JobPool
from .s3.multipart.part_plan import MIN_PART_SIZE, default_part_size, plan_parts
from .s3.types import CompletedCopy, CopyRange, CopySource, S3Credentials, S3Provider
from .types import PartInfo, Range, SizeSuffix

__all__ = [
    "Boto3Backend",
    "Checkpoint",
    "CollaboratorError",
    "CompletedCopy",
    "Config",
    "CopyCancelled",
    "CopyError",
    "CopyOptions",
    "CopyPartsFailed",
    "CopyRange",
    "CopySource",
    "CopyState",
    "FinishedPiece",
    "JobPool",
    "MIN_PART_SIZE",
    "MultipartCopier",
    "MultipartCopyBackend",
    "Parsed",
    "PartCopyError",
    "PartInfo",
    "Range",
    "S3Client",
    "S3Config",
    "S3Credentials",
    "S3Provider",
    "Section",
    "SizeSuffix",
    "ValidationError",
    "configure_logging",
    "create_s3_client",
    "default_part_size",
    "plan_parts",
]
