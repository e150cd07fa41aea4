from dataclasses import dataclass


@dataclass
class FinishedPiece:
    part_number: int
    etag: str

    def __post_init__(self):
        assert isinstance(self.part_number, int)
        assert isinstance(self.etag, str)

    def to_json(self) -> dict:
        # amazon s3 style dict
        return {"PartNumber": self.part_number, "ETag": self.etag}

    @staticmethod
    def to_json_array(parts: list["FinishedPiece"]) -> list[dict]:
        ordered = sorted(parts, key=lambda x: x.part_number)
        return [p.to_json() for p in ordered]

    @staticmethod
    def from_json(json: dict) -> "FinishedPiece":
        part_number = json.get("PartNumber") or json.get("part_number")
        if part_number is None:
            part_number = json.get("number")
        etag = json.get("ETag") or json.get("etag")
        if not isinstance(part_number, int) or not isinstance(etag, str):
            raise ValueError(f"Invalid finished piece: {json}")
        return FinishedPiece(part_number=part_number, etag=etag)

    @staticmethod
    def from_json_array(json: list[dict]) -> list["FinishedPiece"]:
        return [FinishedPiece.from_json(j) for j in json]

    def __hash__(self) -> int:
        return hash(self.part_number)
