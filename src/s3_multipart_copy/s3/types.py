from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import quote


class S3Provider(Enum):
    S3 = "s3"  # generic S3
    BACKBLAZE = "b2"
    DIGITAL_OCEAN = "DigitalOcean"

    @staticmethod
    def from_str(value: str) -> "S3Provider":
        """Convert string to S3Provider."""
        if value == "b2":
            return S3Provider.BACKBLAZE
        if value == "DigitalOcean":
            return S3Provider.DIGITAL_OCEAN
        if value in ("s3", "AWS", "Other", "Minio"):
            return S3Provider.S3
        raise ValueError(f"Unknown S3Provider: {value}")


@dataclass
class S3Credentials:
    """Credentials for accessing S3."""

    provider: S3Provider
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    region_name: str | None = None
    endpoint_url: str | None = None


@dataclass(frozen=True)
class CopySource:
    bucket: str
    key: str

    def to_descriptor(self) -> str:
        """The x-amz-copy-source form: /<bucket>/<url encoded key>."""
        return f"/{self.bucket}/{quote(self.key, safe='')}"


@dataclass(frozen=True)
class CopyRange:
    source_bucket: str
    source_key: str
    start_offset: int
    end_offset: int

    def __post_init__(self):
        if not (0 <= self.start_offset < self.end_offset):
            raise ValueError(
                f"Invalid copy range: start={self.start_offset} end={self.end_offset}"
            )

    @property
    def copy_size(self) -> int:
        return self.end_offset - self.start_offset

    @property
    def source(self) -> CopySource:
        return CopySource(bucket=self.source_bucket, key=self.source_key)


@dataclass
class ObjectMeta:
    size: int
    raw: Any = None


@dataclass
class InitiateResult:
    upload_id: str
    raw: Any = None


@dataclass
class PartCopyResult:
    etag: str
    status: int = 200
    raw: Any = None


@dataclass
class CompletedCopy:
    bucket: str
    key: str
    location: str
    etag: str | None = None
    raw: dict = field(default_factory=dict)
