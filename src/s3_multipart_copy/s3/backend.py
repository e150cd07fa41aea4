"""
https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/s3/client/upload_part_copy.html
  *  client.upload_part_copy

The remote operations a multipart copy needs. The orchestrator only talks to
MultipartCopyBackend, Boto3Backend is the S3 implementation.
"""

import abc
import logging
from typing import Any

from botocore.client import BaseClient

from s3_multipart_copy.s3.multipart.finished_piece import FinishedPiece
from s3_multipart_copy.s3.types import (
    CompletedCopy,
    InitiateResult,
    ObjectMeta,
    PartCopyResult,
)

logger = logging.getLogger(__name__)

# HTTP header -> upload_part_copy keyword
_COPY_HEADER_PARAMS: dict[str, str] = {
    "x-amz-copy-source-if-match": "CopySourceIfMatch",
    "x-amz-copy-source-if-none-match": "CopySourceIfNoneMatch",
    "x-amz-copy-source-if-modified-since": "CopySourceIfModifiedSince",
    "x-amz-copy-source-if-unmodified-since": "CopySourceIfUnmodifiedSince",
    "x-amz-request-payer": "RequestPayer",
    "x-amz-expected-bucket-owner": "ExpectedBucketOwner",
    "x-amz-source-expected-bucket-owner": "ExpectedSourceBucketOwner",
    "x-amz-server-side-encryption-customer-algorithm": "SSECustomerAlgorithm",
    "x-amz-server-side-encryption-customer-key": "SSECustomerKey",
    "x-amz-copy-source-server-side-encryption-customer-algorithm": "CopySourceSSECustomerAlgorithm",
    "x-amz-copy-source-server-side-encryption-customer-key": "CopySourceSSECustomerKey",
}


def copy_headers_to_params(headers: dict[str, str] | None) -> dict[str, str]:
    out: dict[str, str] = {}
    for name, value in (headers or {}).items():
        param = _COPY_HEADER_PARAMS.get(name.lower())
        if param is None:
            raise ValueError(f"Unsupported copy header: {name}")
        out[param] = value
    return out


class MultipartCopyBackend(abc.ABC):
    """Remote side of a multipart copy. Implementations must be thread safe."""

    @abc.abstractmethod
    def head_object_meta(self, bucket: str, key: str) -> ObjectMeta:
        pass

    @abc.abstractmethod
    def initiate_upload(
        self, target_name: str, options: dict[str, Any] | None = None
    ) -> InitiateResult:
        pass

    @abc.abstractmethod
    def copy_one_part(
        self,
        target_name: str,
        upload_id: str,
        part_number: int,
        source_descriptor: str,
        byte_range: str | None,
        headers: dict[str, str] | None = None,
    ) -> PartCopyResult:
        pass

    @abc.abstractmethod
    def complete_upload(
        self,
        target_name: str,
        upload_id: str,
        ordered_parts: list[FinishedPiece],
        options: dict[str, Any] | None = None,
    ) -> Any:
        pass


class Boto3Backend(MultipartCopyBackend):
    def __init__(self, s3_client: BaseClient, bucket: str) -> None:
        self.s3_client = s3_client
        self.bucket = bucket

    def head_object_meta(self, bucket: str, key: str) -> ObjectMeta:
        response = self.s3_client.head_object(Bucket=bucket, Key=key)
        return ObjectMeta(size=int(response["ContentLength"]), raw=response)

    def initiate_upload(
        self, target_name: str, options: dict[str, Any] | None = None
    ) -> InitiateResult:
        create_params: dict[str, Any] = dict(options or {})
        create_params["Bucket"] = self.bucket
        create_params["Key"] = target_name
        logger.debug("Creating multipart upload with %s", create_params)
        mpu = self.s3_client.create_multipart_upload(**create_params)
        return InitiateResult(upload_id=mpu["UploadId"], raw=mpu)

    def copy_one_part(
        self,
        target_name: str,
        upload_id: str,
        part_number: int,
        source_descriptor: str,
        byte_range: str | None,
        headers: dict[str, str] | None = None,
    ) -> PartCopyResult:
        params: dict[str, Any] = copy_headers_to_params(headers)
        params.update(
            {
                "Bucket": self.bucket,
                "CopySource": source_descriptor,
                "Key": target_name,
                "PartNumber": part_number,
                "UploadId": upload_id,
            }
        )
        if byte_range:
            params["CopySourceRange"] = byte_range
        part = self.s3_client.upload_part_copy(**params)
        status = part.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
        etag = part["CopyPartResult"]["ETag"]
        return PartCopyResult(etag=etag, status=status, raw=part)

    def complete_upload(
        self,
        target_name: str,
        upload_id: str,
        ordered_parts: list[FinishedPiece],
        options: dict[str, Any] | None = None,
    ) -> CompletedCopy:
        params: dict[str, Any] = dict(options or {})
        response = self.s3_client.complete_multipart_upload(
            Bucket=self.bucket,
            Key=target_name,
            UploadId=upload_id,
            MultipartUpload={"Parts": FinishedPiece.to_json_array(ordered_parts)},
            **params,
        )
        return CompletedCopy(
            bucket=self.bucket,
            key=target_name,
            location=response.get("Location", f"s3://{self.bucket}/{target_name}"),
            etag=response.get("ETag"),
            raw=response,
        )
