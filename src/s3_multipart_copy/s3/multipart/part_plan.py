import warnings

from s3_multipart_copy.types import PartInfo, Range, SizeSuffix

MIN_PART_SIZE = 100 * 1024
DEFAULT_PART_SIZE = 1024 * 1024
MAX_PART_NUMBER = 10000


def default_part_size(copy_size: int, part_size: int | None = None) -> int:
    """Part size for a copy: the requested size (1 MiB when unset), grown so
    the copy fits in MAX_PART_NUMBER parts."""
    part_size = part_size or DEFAULT_PART_SIZE
    safe_size = -(-copy_size // MAX_PART_NUMBER)
    if part_size < safe_size:
        warnings.warn(
            f"part_size: {SizeSuffix(part_size)} needs more than {MAX_PART_NUMBER} parts for {SizeSuffix(copy_size)}, adjusting part_size to {SizeSuffix(safe_size)}"
        )
        part_size = safe_size
    return part_size


def num_parts(copy_size: int, part_size: int) -> int:
    return -(-copy_size // part_size)


def plan_parts(copy_size: int, part_size: int, start_offset: int = 0) -> list[PartInfo]:
    if copy_size <= 0:
        raise ValueError(f"copy_size must be positive, got {copy_size}")
    if part_size <= 0:
        raise ValueError(f"part_size must be positive, got {part_size}")
    if start_offset < 0:
        raise ValueError(f"start_offset must not be negative, got {start_offset}")

    end_offset = start_offset + copy_size
    part_infos: list[PartInfo] = []
    for i in range(num_parts(copy_size, part_size)):
        start = start_offset + i * part_size
        end = min(start + part_size, end_offset)
        part_infos.append(PartInfo(part_number=i + 1, range=Range(start, end)))
    return part_infos
