import json
import logging

from botocore.client import BaseClient

from s3_multipart_copy.s3.backend import Boto3Backend
from s3_multipart_copy.s3.create import S3Config, create_s3_client
from s3_multipart_copy.s3.multipart.copy_orchestrator import (
    CopyOptions,
    MultipartCopier,
)
from s3_multipart_copy.s3.types import CompletedCopy, CopySource, S3Credentials

logger = logging.getLogger(__name__)


class S3Client:
    def __init__(
        self,
        credentials: S3Credentials,
        s3_config: S3Config | None = None,
        client: BaseClient | None = None,
    ) -> None:
        self.s3_config = s3_config or S3Config()
        self.verbose = bool(self.s3_config.verbose)
        self.credentials: S3Credentials = credentials
        self.client: BaseClient = client or create_s3_client(credentials, self.s3_config)

    def copier(self, dst_bucket: str) -> MultipartCopier:
        backend = Boto3Backend(self.client, dst_bucket)
        return MultipartCopier(backend, verbose=self.verbose)

    def copy_object_multipart(
        self,
        source: CopySource,
        dst_bucket: str,
        dst_key: str,
        options: CopyOptions | None = None,
        copier: MultipartCopier | None = None,
    ) -> CompletedCopy:
        copier = copier or self.copier(dst_bucket)
        try:
            return copier.copy(source, dst_key, options)
        except Exception as e:
            info_json = {
                "src": f"{source.bucket}/{source.key}",
                "dst": f"{dst_bucket}/{dst_key}",
                "access_key_id": self.credentials.access_key_id[:4] + "...",
                "endpoint_url": self.credentials.endpoint_url,
                "provider": self.credentials.provider.value,
                "region": self.credentials.region_name,
            }
            info_json_str = json.dumps(info_json, indent=2)
            logger.warning("Error copying object: %s\nInfo:\n\n%s", e, info_json_str)
            raise
