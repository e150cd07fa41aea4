import logging
from typing import Any

from s3_multipart_copy.errors import PartCopyError
from s3_multipart_copy.s3.backend import MultipartCopyBackend
from s3_multipart_copy.s3.multipart.finished_piece import FinishedPiece
from s3_multipart_copy.s3.types import CopySource
from s3_multipart_copy.types import Range

logger = logging.getLogger(__name__)

_SUCCESS_STATUS = 200


def copy_part(
    backend: MultipartCopyBackend,
    target_name: str,
    upload_id: str,
    part_number: int,
    byte_range: Range | None,
    source: CopySource,
    headers: dict[str, str] | None = None,
) -> tuple[FinishedPiece, Any]:
    """
    Copy one part of `source` into the upload.

    Args:
        byte_range: end exclusive, None copies the whole source object
        headers: extra copy headers, e.g. x-amz-copy-source-if-match

    Returns:
        The finished piece and the raw backend response

    Raises:
        PartCopyError: on any non 200 status or transport failure
    """
    range_str = byte_range.to_range_str() if byte_range is not None else None
    try:
        result = backend.copy_one_part(
            target_name,
            upload_id,
            part_number,
            source.to_descriptor(),
            range_str,
            dict(headers or {}),
        )
    except Exception as e:
        raise PartCopyError(part_number, e) from e

    if result.status != _SUCCESS_STATUS:
        raise PartCopyError(
            part_number,
            msg=f"copy of part {part_number} returned status {result.status}",
        )
    logger.debug("part %d copied, range %s, etag %s", part_number, range_str, result.etag)
    return FinishedPiece(part_number=part_number, etag=result.etag), result.raw
