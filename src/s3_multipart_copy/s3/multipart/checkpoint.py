import copy
import json
from dataclasses import dataclass, field
from threading import Lock

from s3_multipart_copy.s3.multipart.finished_piece import FinishedPiece


@dataclass
class Checkpoint:
    """Progress of one multipart copy.

    The caller may persist `to_json()` and hand the checkpoint back later to
    resume. Only `done_parts` changes while a copy runs, and only under `lock`.
    """

    target_name: str
    copy_size: int
    part_size: int
    upload_id: str
    done_parts: list[FinishedPiece] = field(default_factory=list)
    # first source byte of the copy, parts are planned from here
    start_offset: int = 0
    lock: Lock = field(
        default_factory=Lock, init=False, repr=False, compare=False
    )

    def add_done(self, piece: FinishedPiece) -> None:
        self.done_parts.append(piece)

    def done_part_numbers(self) -> set[int]:
        return set([p.part_number for p in self.done_parts])

    def remaining_part_numbers(self, all_part_numbers: list[int]) -> list[int]:
        done = self.done_part_numbers()
        return [n for n in all_part_numbers if n not in done]

    def sorted_done_parts(self) -> list[FinishedPiece]:
        return sorted(self.done_parts, key=lambda p: p.part_number)

    def snapshot(self) -> "Checkpoint":
        return Checkpoint(
            target_name=self.target_name,
            copy_size=self.copy_size,
            part_size=self.part_size,
            upload_id=self.upload_id,
            done_parts=copy.deepcopy(self.done_parts),
            start_offset=self.start_offset,
        )

    def to_json(self) -> dict:
        return {
            "target_name": self.target_name,
            "copy_size": self.copy_size,
            "part_size": self.part_size,
            "upload_id": self.upload_id,
            "start_offset": self.start_offset,
            "done_parts": [p.to_json() for p in self.done_parts],
        }

    def to_json_str(self) -> str:
        return json.dumps(self.to_json(), indent=2)

    @staticmethod
    def from_json(data: dict) -> "Checkpoint":
        try:
            return Checkpoint(
                target_name=data["target_name"],
                copy_size=int(data["copy_size"]),
                part_size=int(data["part_size"]),
                upload_id=data["upload_id"],
                done_parts=FinishedPiece.from_json_array(data.get("done_parts", [])),
                start_offset=int(data.get("start_offset", 0)),
            )
        except KeyError as e:
            raise ValueError(f"Checkpoint is missing {e}") from e

    @staticmethod
    def from_json_str(text: str) -> "Checkpoint":
        return Checkpoint.from_json(json.loads(text))

    def __str__(self):
        return self.to_json_str()
