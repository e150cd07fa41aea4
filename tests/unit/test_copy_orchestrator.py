"""
Unit test file.
"""

import os
import unittest
from threading import Barrier, Event

from fake_backend import FakeBackend

from s3_multipart_copy import (
    MIN_PART_SIZE,
    Checkpoint,
    CollaboratorError,
    CopyCancelled,
    CopyError,
    CopyOptions,
    CopyPartsFailed,
    CopySource,
    CopyState,
    MultipartCopier,
    ValidationError,
)

PART = MIN_PART_SIZE
SRC = CopySource(bucket="src-bucket", key="data/big.bin")
DST = "copies/big.bin"


def _payload(size: int) -> bytes:
    return os.urandom(size)


class CopyOrchestratorTester(unittest.TestCase):
    """Test the end to end multipart copy flow against a fake backend."""

    def setUp(self) -> None:
        self.backend = FakeBackend()
        self.data = _payload(5 * PART)
        self.backend.put(SRC.bucket, SRC.key, self.data)
        self.copier = MultipartCopier(self.backend)

    def test_copies_whole_object(self) -> None:
        result = self.copier.copy(SRC, DST, CopyOptions(part_size=PART))
        self.assertEqual(result.location, f"s3://dst-bucket/{DST}")
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data)
        self.assertEqual(self.backend.count("copy"), 5)
        self.assertEqual(self.backend.count("head"), 1)
        self.assertEqual(self.backend.completed_parts, [[1, 2, 3, 4, 5]])
        self.assertEqual(self.copier.state, CopyState.DONE)

    def test_copies_explicit_range_without_head(self) -> None:
        start, end = 1000, 1000 + 2 * PART + 17
        result = self.copier.copy(
            SRC,
            DST,
            CopyOptions(part_size=PART, start_offset=start, end_offset=end),
        )
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data[start:end])
        self.assertEqual(self.backend.count("head"), 0)
        self.assertEqual(self.backend.count("copy"), 3)
        ranges = sorted(c[1] for c in self.backend.copy_calls)
        self.assertIn(f"bytes={start}-{start + PART - 1}", ranges)
        self.assertIsNotNone(result)

    def test_minimum_copy_size(self) -> None:
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(end_offset=MIN_PART_SIZE - 1))
        self.assertEqual(self.backend.count("initiate"), 0)
        self.assertEqual(self.copier.state, CopyState.FAILED)

        self.copier.copy(SRC, DST, CopyOptions(end_offset=MIN_PART_SIZE))
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data[:MIN_PART_SIZE])
        self.assertEqual(self.backend.count("copy"), 1)

    def test_minimum_part_size(self) -> None:
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(part_size=MIN_PART_SIZE - 1))
        self.assertEqual(self.backend.count("initiate"), 0)

    def test_invalid_range(self) -> None:
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(start_offset=10, end_offset=10))

    def test_progress_reports(self) -> None:
        seen: list[tuple[float, int]] = []

        def progress(ratio: float, checkpoint: Checkpoint, raw) -> None:
            seen.append((ratio, len(checkpoint.done_parts)))

        self.copier.copy(SRC, DST, CopyOptions(part_size=PART, progress=progress))
        self.assertEqual(seen[0], (0.0, 0))
        self.assertEqual(len(seen), 6)
        ratios = [r for r, _ in seen]
        self.assertEqual(ratios, sorted(ratios))
        self.assertEqual(seen[-1], (1.0, 5))
        for ratio, count in seen:
            self.assertAlmostEqual(ratio, count / 5)

    def test_bounded_parallelism(self) -> None:
        backend = FakeBackend(delay=0.02)
        backend.put(SRC.bucket, SRC.key, _payload(12 * PART))
        MultipartCopier(backend).copy(SRC, DST, CopyOptions(part_size=PART, parallel=3))
        self.assertEqual(backend.count("copy"), 12)
        self.assertLessEqual(backend.max_in_flight, 3)

    def test_partial_failure_keeps_progress(self) -> None:
        self.backend.fail_parts.add(3)
        snapshots: list[Checkpoint] = []
        with self.assertRaises(CopyPartsFailed) as ctx:
            self.copier.copy(
                SRC,
                DST,
                CopyOptions(
                    part_size=PART,
                    progress=lambda r, cp, raw: snapshots.append(cp),
                ),
            )
        err = ctx.exception
        self.assertEqual(err.part_number, 3)
        self.assertIsInstance(err.cause, ConnectionError)
        self.assertIn("part_num: 3", str(err))
        self.assertEqual(snapshots[-1].done_part_numbers(), {1, 2, 4, 5})
        self.assertEqual(self.backend.count("complete"), 0)
        self.assertEqual(self.copier.state, CopyState.FAILED)

        # resuming only copies the failed part
        self.backend.fail_parts.clear()
        before = self.backend.count("copy")
        self.copier.copy(SRC, DST, CopyOptions(checkpoint=snapshots[-1]))
        self.assertEqual(self.backend.count("copy") - before, 1)
        self.assertEqual(self.backend.count("initiate"), 1)
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data)

    def test_first_failure_in_submission_order(self) -> None:
        self.backend.fail_parts.update({4, 2})
        with self.assertRaises(CopyPartsFailed) as ctx:
            self.copier.copy(SRC, DST, CopyOptions(part_size=PART, parallel=5))
        self.assertEqual(ctx.exception.part_number, 2)

    def test_resume_matches_uninterrupted_copy(self) -> None:
        reference = FakeBackend()
        reference.put(SRC.bucket, SRC.key, self.data)
        expected = MultipartCopier(reference).copy(
            SRC, DST, CopyOptions(part_size=PART, parallel=1)
        )

        cancel = Event()
        snapshots: list[Checkpoint] = []

        def progress(ratio: float, checkpoint: Checkpoint, raw) -> None:
            snapshots.append(checkpoint)
            if len(checkpoint.done_parts) == 2:
                cancel.set()

        with self.assertRaises(CopyCancelled):
            self.copier.copy(
                SRC,
                DST,
                CopyOptions(part_size=PART, parallel=1, progress=progress, cancel_event=cancel),
            )
        checkpoint = snapshots[-1]
        self.assertEqual(checkpoint.done_part_numbers(), {1, 2})
        self.assertEqual(self.copier.state, CopyState.CANCELLED)

        result = self.copier.copy(SRC, DST, CopyOptions(checkpoint=checkpoint, parallel=3))
        self.assertEqual(result.etag, expected.etag)
        self.assertEqual(checkpoint.done_part_numbers(), {1, 2, 3, 4, 5})
        self.assertEqual(
            {(p.part_number, p.etag) for p in checkpoint.done_parts},
            {(n, etag) for n, (etag, _) in reference.uploads["upload-1"].items()},
        )
        self.assertEqual(self.backend.count("copy"), 5)

    def test_cancel_before_copy(self) -> None:
        self.copier.cancel()
        with self.assertRaises(CopyCancelled):
            self.copier.copy(SRC, DST, CopyOptions(part_size=PART))
        self.assertEqual(self.backend.calls, [])
        self.assertEqual(self.copier.state, CopyState.CANCELLED)

        self.copier.reset_cancel()
        self.copier.copy(SRC, DST, CopyOptions(part_size=PART))
        self.assertEqual(self.backend.count("copy"), 5)

    def test_cancel_is_not_a_copy_error(self) -> None:
        cancel = Event()
        cancel.set()
        with self.assertRaises(CopyCancelled) as ctx:
            self.copier.copy(SRC, DST, CopyOptions(cancel_event=cancel))
        self.assertNotIsInstance(ctx.exception, CopyError)

    def test_progress_failure_propagates(self) -> None:
        def progress(ratio: float, checkpoint: Checkpoint, raw) -> None:
            if ratio > 0:
                raise OSError("disk full")

        with self.assertRaises(OSError) as ctx:
            self.copier.copy(
                SRC, DST, CopyOptions(part_size=PART, parallel=1, progress=progress)
            )
        self.assertEqual(str(ctx.exception), "disk full")
        # the failing report stops the remaining parts from starting
        self.assertEqual(self.backend.count("copy"), 1)
        self.assertEqual(self.backend.count("complete"), 0)

    def test_initial_progress_failure_propagates(self) -> None:
        def progress(ratio: float, checkpoint: Checkpoint, raw) -> None:
            raise OSError("cannot save")

        with self.assertRaises(OSError):
            self.copier.copy(SRC, DST, CopyOptions(part_size=PART, progress=progress))
        self.assertEqual(self.backend.count("copy"), 0)

    def test_resume_with_different_part_size(self) -> None:
        checkpoint = Checkpoint(
            target_name=DST, copy_size=5 * PART, part_size=PART, upload_id="upload-9"
        )
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(checkpoint=checkpoint, part_size=2 * PART))
        self.assertEqual(self.backend.calls, [])

    def test_resume_with_unknown_part(self) -> None:
        checkpoint = Checkpoint.from_json(
            {
                "target_name": DST,
                "copy_size": 5 * PART,
                "part_size": PART,
                "upload_id": "upload-9",
                "done_parts": [{"PartNumber": 7, "ETag": "x"}],
            }
        )
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(checkpoint=checkpoint))

    def test_resume_with_other_target(self) -> None:
        checkpoint = Checkpoint(
            target_name="elsewhere", copy_size=5 * PART, part_size=PART, upload_id="u"
        )
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(checkpoint=checkpoint))

    def test_resume_with_all_parts_done_only_completes(self) -> None:
        snapshots: list[Checkpoint] = []
        self.backend.fail_complete = True
        with self.assertRaises(CollaboratorError) as ctx:
            self.copier.copy(
                SRC,
                DST,
                CopyOptions(part_size=PART, progress=lambda r, cp, raw: snapshots.append(cp)),
            )
        self.assertEqual(ctx.exception.phase, "complete")

        self.backend.fail_complete = False
        copies = self.backend.count("copy")
        self.copier.copy(SRC, DST, CopyOptions(checkpoint=snapshots[-1]))
        self.assertEqual(self.backend.count("copy"), copies)
        self.assertEqual(self.backend.completed_parts[-1], [1, 2, 3, 4, 5])
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data)

    def test_cancel_while_parts_in_flight(self) -> None:
        backend = FakeBackend(delay=0.02)
        backend.put(SRC.bucket, SRC.key, _payload(6 * PART))
        cancel = Event()
        started = Barrier(3)

        def on_copy(part_number: int) -> None:
            # cancel once parts 1-3 are all inside copy_one_part
            started.wait(timeout=10)
            cancel.set()

        backend.on_copy = on_copy
        snapshots: list[Checkpoint] = []
        copier = MultipartCopier(backend)
        with self.assertRaises(CopyCancelled):
            copier.copy(
                SRC,
                DST,
                CopyOptions(
                    part_size=PART,
                    parallel=3,
                    cancel_event=cancel,
                    progress=lambda r, cp, raw: snapshots.append(cp),
                ),
            )
        self.assertEqual(copier.state, CopyState.CANCELLED)
        self.assertEqual(backend.count("copy"), 3)
        # copied remotely, but finished after the cancel so never recorded
        self.assertEqual(set(backend.uploads["upload-1"]), {1, 2, 3})
        self.assertEqual(len(snapshots), 1)
        self.assertEqual(snapshots[-1].done_parts, [])
        self.assertEqual(backend.count("complete"), 0)

    def test_resume_with_same_options_after_part_size_growth(self) -> None:
        def doubling_sizer(copy_size: int, part_size: int | None) -> int:
            return 2 * (part_size or PART)

        copier = MultipartCopier(self.backend, part_sizer=doubling_sizer)
        cancel = Event()
        snapshots: list[Checkpoint] = []

        def progress(ratio: float, checkpoint: Checkpoint, raw) -> None:
            snapshots.append(checkpoint)
            if checkpoint.done_parts:
                cancel.set()

        with self.assertRaises(CopyCancelled):
            copier.copy(
                SRC,
                DST,
                CopyOptions(part_size=PART, parallel=1, progress=progress, cancel_event=cancel),
            )
        checkpoint = snapshots[-1]
        self.assertEqual(checkpoint.part_size, 2 * PART)
        self.assertEqual(checkpoint.done_part_numbers(), {1})

        # the same requested part_size resumes, it grows to the same size
        copier.copy(SRC, DST, CopyOptions(part_size=PART, checkpoint=checkpoint))
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data)
        self.assertEqual(self.backend.count("copy"), 3)

        with self.assertRaises(ValidationError):
            copier.copy(SRC, DST, CopyOptions(part_size=2 * PART, checkpoint=checkpoint))

    def test_resume_ranged_copy_keeps_offset(self) -> None:
        start, end = 3000, 3000 + 3 * PART
        cancel = Event()
        snapshots: list[Checkpoint] = []

        def progress(ratio: float, checkpoint: Checkpoint, raw) -> None:
            snapshots.append(checkpoint)
            if checkpoint.done_parts:
                cancel.set()

        with self.assertRaises(CopyCancelled):
            self.copier.copy(
                SRC,
                DST,
                CopyOptions(
                    part_size=PART,
                    parallel=1,
                    start_offset=start,
                    end_offset=end,
                    progress=progress,
                    cancel_event=cancel,
                ),
            )
        checkpoint = Checkpoint.from_json_str(snapshots[-1].to_json_str())
        self.assertEqual(checkpoint.start_offset, start)

        self.copier.copy(SRC, DST, CopyOptions(checkpoint=checkpoint))
        self.assertEqual(self.backend.objects[("dst-bucket", DST)], self.data[start:end])
        self.assertEqual(self.backend.count("copy"), 3)
        self.assertEqual(self.backend.count("head"), 0)

    def test_resume_with_other_start_offset(self) -> None:
        checkpoint = Checkpoint(
            target_name=DST,
            copy_size=2 * PART,
            part_size=PART,
            upload_id="upload-9",
            start_offset=10,
        )
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(checkpoint=checkpoint, start_offset=0))
        self.assertEqual(self.backend.calls, [])

    def test_initiate_failure(self) -> None:
        self.backend.fail_initiate = True
        with self.assertRaises(CollaboratorError) as ctx:
            self.copier.copy(SRC, DST, CopyOptions(part_size=PART))
        self.assertEqual(ctx.exception.phase, "initiate")
        self.assertEqual(self.backend.count("copy"), 0)

    def test_head_failure(self) -> None:
        with self.assertRaises(CollaboratorError) as ctx:
            self.copier.copy(CopySource(bucket="src-bucket", key="missing"), DST)
        self.assertEqual(ctx.exception.phase, "head")

    def test_invalid_parallel(self) -> None:
        with self.assertRaises(ValidationError):
            self.copier.copy(SRC, DST, CopyOptions(parallel=0))

    def test_submit_returns_future(self) -> None:
        with MultipartCopier(self.backend) as copier:
            fut = copier.submit(SRC, DST, CopyOptions(part_size=2 * PART))
            result = fut.result(timeout=30)
        self.assertEqual(result.key, DST)
        self.assertEqual(self.backend.count("copy"), 3)


if __name__ == "__main__":
    unittest.main()
