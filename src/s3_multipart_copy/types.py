import re
from dataclasses import dataclass

# suffix letter, index is the power of 1024
_UNITS = ["B", "K", "M", "G", "T", "P"]
_PATTERN_SIZE_SUFFIX = re.compile(r"^(\d+(?:\.\d+)?)([A-Za-z]+)$")


def parse_size(text: str) -> int:
    """Parse "4096", "100K", "16.5M" or "64MB" into a byte count."""
    text = text.strip()
    if text.isdigit():
        return int(text)
    match = _PATTERN_SIZE_SUFFIX.match(text)
    if match is None:
        raise ValueError(f"Invalid size suffix: {text}")
    number, suffix = match.groups()
    unit = suffix[0].upper()
    if unit not in _UNITS:
        raise ValueError(f"Invalid size suffix: {suffix}")
    return int(float(number) * 1024 ** _UNITS.index(unit))


def format_size(size: int) -> str:
    """Render a byte count in the largest unit, with one decimal unless whole."""
    if size < 0 or size >= 1024 ** len(_UNITS):
        raise ValueError(f"Invalid size: {size}")
    power = 0
    while power + 1 < len(_UNITS) and size >= 1024 ** (power + 1):
        power += 1
    value = round(size / 1024**power, 1)
    # 1023.99K rounds up to the next unit
    if value >= 1024 and power + 1 < len(_UNITS):
        power += 1
        value = round(size / 1024**power, 1)
    text = str(int(value)) if value.is_integer() else f"{value:.1f}"
    return text + _UNITS[power]


class SizeSuffix:
    """A byte count that parses from and prints as "64MB" style strings."""

    def __init__(self, size: "int | float | str | SizeSuffix"):
        self._size: int
        if isinstance(size, SizeSuffix):
            self._size = size._size
        elif isinstance(size, int):
            self._size = size
        elif isinstance(size, str):
            self._size = parse_size(size)
        elif isinstance(size, float):
            self._size = int(size)
        else:
            raise ValueError(f"Invalid type for size: {type(size)}")

    def as_int(self) -> int:
        return self._size

    def as_str(self) -> str:
        return format_size(self._size)

    def __repr__(self) -> str:
        return self.as_str()

    def __str__(self) -> str:
        return self.as_str()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (SizeSuffix, int)):
            return False
        return self._size == SizeSuffix(other)._size


@dataclass
class S3PathInfo:
    remote: str
    bucket: str
    key: str


@dataclass(frozen=True)
class Range:
    start: int  # inclusive
    end: int  # exclusive (not like http byte range which is inclusive)

    def __post_init__(self):
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"Invalid range: [{self.start}, {self.end})")

    @property
    def size(self) -> int:
        return self.end - self.start

    def to_range_str(self) -> str:
        return f"bytes={self.start}-{self.end - 1}"


@dataclass(frozen=True)
class PartInfo:
    part_number: int
    range: Range

    def __post_init__(self):
        assert self.part_number >= 1
