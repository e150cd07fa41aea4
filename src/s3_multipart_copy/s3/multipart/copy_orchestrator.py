"""
Resumable, parallel multipart copy of one object into another using
upload_part_copy.

Flow: validate -> initiate (fresh copies only) -> plan -> copy the remaining
parts through a JobPool -> complete. The checkpoint is updated after every
part, so a failed or cancelled copy can be resumed by passing the last
checkpoint back in.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from threading import Event, Lock
from typing import Any, Callable

from s3_multipart_copy.errors import (
    CollaboratorError,
    CopyCancelled,
    CopyPartsFailed,
    PartCopyError,
    ValidationError,
)
from s3_multipart_copy.s3.backend import MultipartCopyBackend
from s3_multipart_copy.s3.multipart.checkpoint import Checkpoint
from s3_multipart_copy.s3.multipart.job_pool import DEFAULT_MAX_WORKERS, JobPool
from s3_multipart_copy.s3.multipart.part_copy import copy_part
from s3_multipart_copy.s3.multipart.part_plan import (
    MIN_PART_SIZE,
    default_part_size,
    plan_parts,
)
from s3_multipart_copy.s3.types import CopyRange, CopySource
from s3_multipart_copy.types import PartInfo, SizeSuffix
from s3_multipart_copy.util import collapse_runs, locked_print

logger = logging.getLogger(__name__)

# (ratio, checkpoint snapshot, raw response)
ProgressCallback = Callable[[float, Checkpoint, Any], None]
PartSizer = Callable[[int, "int | None"], int]


class CopyState(Enum):
    VALIDATING = "validating"
    INITIATING = "initiating"
    PLANNING = "planning"
    EXECUTING = "executing"
    FINALIZING = "finalizing"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class CopyOptions:
    part_size: int | None = None
    parallel: int = DEFAULT_MAX_WORKERS
    checkpoint: Checkpoint | None = None
    progress: ProgressCallback | None = None
    copy_headers: dict[str, str] = field(default_factory=dict)
    cancel_event: Event | None = None
    # None: 0 for a fresh copy, the checkpoint's offset on resume
    start_offset: int | None = None
    end_offset: int | None = None
    upload_options: dict[str, Any] = field(default_factory=dict)
    complete_options: dict[str, Any] = field(default_factory=dict)


@dataclass
class _CopyRun:
    target_name: str
    cancel_event: Event
    verbose: bool
    state: CopyState = CopyState.VALIDATING
    progress_error: Exception | None = None

    def enter(self, state: CopyState) -> None:
        logger.debug("%s: %s -> %s", self.target_name, self.state.value, state.value)
        self.state = state

    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def verbose_print(self, msg: str) -> None:
        if self.verbose:
            locked_print(msg)


class MultipartCopier:
    def __init__(
        self,
        backend: MultipartCopyBackend,
        part_sizer: PartSizer = default_part_size,
        verbose: bool = False,
    ) -> None:
        self.backend = backend
        self.part_sizer = part_sizer
        self.verbose = verbose
        self.cancel_event = Event()
        self.state: CopyState | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = Lock()

    def cancel(self) -> None:
        self.cancel_event.set()

    def reset_cancel(self) -> None:
        self.cancel_event.clear()

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def submit(
        self,
        source: CopySource,
        target_name: str,
        options: CopyOptions | None = None,
    ) -> "Future[Any]":
        """Run `copy` on a background thread."""
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(thread_name_prefix="multipart-copy")
            executor = self._executor
        return executor.submit(self.copy, source, target_name, options)

    def close(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> "MultipartCopier":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def copy(
        self,
        source: CopySource,
        target_name: str,
        options: CopyOptions | None = None,
    ) -> Any:
        """Copy `source` into `target_name`, returning the backend's complete result.

        Raises:
            ValidationError: bad sizes or a checkpoint that does not fit
            CollaboratorError: head, initiate or complete failed
            CopyPartsFailed: at least one part failed, see `.part_number`
            CopyCancelled: the cancel event was set
        """
        options = options or CopyOptions()
        run = _CopyRun(
            target_name=target_name,
            cancel_event=options.cancel_event or self.cancel_event,
            verbose=self.verbose,
        )
        try:
            out = self._copy(run, source, target_name, options)
            run.enter(CopyState.DONE)
            return out
        except CopyCancelled:
            run.enter(CopyState.CANCELLED)
            raise
        except BaseException:
            run.enter(CopyState.FAILED)
            raise
        finally:
            self.state = run.state

    def _copy(
        self,
        run: _CopyRun,
        source: CopySource,
        target_name: str,
        options: CopyOptions,
    ) -> Any:
        if run.cancelled():
            raise CopyCancelled()
        if options.parallel < 1:
            raise ValidationError(f"parallel must be at least 1, got {options.parallel}")

        checkpoint = options.checkpoint
        if checkpoint is not None and checkpoint.upload_id:
            copy_range = self._resolve_range(source, options, checkpoint)
            _validate_resume(
                checkpoint, copy_range, target_name, options.part_size, self.part_sizer
            )
            run.verbose_print(
                f"Resuming multipart copy of {target_name}, upload id {checkpoint.upload_id}"
            )
            return self._resume(run, checkpoint, copy_range, options)

        copy_range = self._resolve_range(source, options, None)
        copy_size = copy_range.copy_size
        if copy_size < MIN_PART_SIZE:
            raise ValidationError(
                f"copy_size must not be smaller than {MIN_PART_SIZE}, got {copy_size}"
            )
        if options.part_size is not None and options.part_size < MIN_PART_SIZE:
            raise ValidationError(
                f"part_size must not be smaller than {MIN_PART_SIZE}, got {options.part_size}"
            )

        run.enter(CopyState.INITIATING)
        try:
            initiated = self.backend.initiate_upload(target_name, options.upload_options)
        except Exception as e:
            raise CollaboratorError("initiate", e) from e
        part_size = self.part_sizer(copy_size, options.part_size)

        checkpoint = Checkpoint(
            target_name=target_name,
            copy_size=copy_size,
            part_size=part_size,
            upload_id=initiated.upload_id,
            start_offset=copy_range.start_offset,
        )
        run.verbose_print(
            f"Created multipart upload {initiated.upload_id} for {target_name}: {SizeSuffix(copy_size)} in parts of {SizeSuffix(part_size)}"
        )
        if options.progress is not None:
            options.progress(0.0, checkpoint.snapshot(), initiated.raw)

        return self._resume(run, checkpoint, copy_range, options)

    def _resolve_range(
        self,
        source: CopySource,
        options: CopyOptions,
        checkpoint: Checkpoint | None,
    ) -> CopyRange:
        start = options.start_offset
        if start is None:
            start = checkpoint.start_offset if checkpoint is not None else 0
        end = options.end_offset
        if end is None:
            if checkpoint is not None:
                end = start + checkpoint.copy_size
            else:
                try:
                    meta = self.backend.head_object_meta(source.bucket, source.key)
                except Exception as e:
                    raise CollaboratorError("head", e) from e
                end = meta.size
        try:
            return CopyRange(
                source_bucket=source.bucket,
                source_key=source.key,
                start_offset=start,
                end_offset=end,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def _resume(
        self,
        run: _CopyRun,
        checkpoint: Checkpoint,
        copy_range: CopyRange,
        options: CopyOptions,
    ) -> Any:
        run.enter(CopyState.PLANNING)
        parts = plan_parts(checkpoint.copy_size, checkpoint.part_size, copy_range.start_offset)
        all_part_numbers = [p.part_number for p in parts]
        unknown = checkpoint.done_part_numbers() - set(all_part_numbers)
        if unknown:
            raise ValidationError(
                f"Checkpoint has done parts {sorted(unknown)} outside of the {len(parts)} planned parts"
            )
        todo = checkpoint.remaining_part_numbers(all_part_numbers)
        run.verbose_print(
            f"{checkpoint.target_name}: {len(todo)} / {len(parts)} parts remaining: {collapse_runs(todo)}"
        )

        run.enter(CopyState.EXECUTING)
        if run.cancelled():
            raise CopyCancelled()

        if todo:
            pool = JobPool(max_parallel=options.parallel, cancel_event=run.cancel_event)
            jobs = [
                partial(
                    self._copy_part_job,
                    run,
                    pool,
                    checkpoint,
                    parts[part_number - 1],
                    len(parts),
                    copy_range.source,
                    options,
                )
                for part_number in todo
            ]
            errors = pool.run(jobs)

            if run.cancelled():
                raise CopyCancelled()
            if run.progress_error is not None:
                raise run.progress_error
            for part_number, err in zip(todo, errors):
                if err is None:
                    continue
                cause: BaseException = err
                if isinstance(err, PartCopyError) and err.cause is not None:
                    cause = err.cause
                logger.warning("part %d of %s failed: %s", part_number, checkpoint.target_name, err)
                raise CopyPartsFailed(part_number, cause) from err

        run.enter(CopyState.FINALIZING)
        try:
            out = self.backend.complete_upload(
                checkpoint.target_name,
                checkpoint.upload_id,
                checkpoint.sorted_done_parts(),
                options.complete_options,
            )
        except Exception as e:
            raise CollaboratorError("complete", e) from e
        run.verbose_print(f"Completed multipart copy of {checkpoint.target_name}")
        return out

    def _copy_part_job(
        self,
        run: _CopyRun,
        pool: JobPool,
        checkpoint: Checkpoint,
        part: PartInfo,
        total_parts: int,
        source: CopySource,
        options: CopyOptions,
    ) -> None:
        if pool.should_stop():
            return
        run.verbose_print(
            f"Copying part {part.part_number} / {total_parts} for {checkpoint.target_name} from {source.bucket}/{source.key}"
        )
        piece, raw = copy_part(
            self.backend,
            checkpoint.target_name,
            checkpoint.upload_id,
            part.part_number,
            part.range,
            source,
            options.copy_headers,
        )
        if run.cancelled():
            return

        with checkpoint.lock:
            checkpoint.add_done(piece)
            if options.progress is None:
                return
            ratio = len(checkpoint.done_parts) / total_parts
            try:
                options.progress(ratio, checkpoint.snapshot(), raw)
            except Exception as e:
                if run.progress_error is None:
                    run.progress_error = e
                pool.stop()
                raise


def _validate_resume(
    checkpoint: Checkpoint,
    copy_range: CopyRange,
    target_name: str,
    part_size: int | None,
    part_sizer: PartSizer,
) -> None:
    if checkpoint.copy_size <= 0 or checkpoint.part_size <= 0:
        raise ValidationError(
            f"Checkpoint has invalid sizes: copy_size={checkpoint.copy_size} part_size={checkpoint.part_size}"
        )
    if target_name != checkpoint.target_name:
        raise ValidationError(
            f"Checkpoint is for {checkpoint.target_name}, not {target_name}"
        )
    if part_size is not None:
        effective = part_sizer(checkpoint.copy_size, part_size)
        if effective != checkpoint.part_size:
            raise ValidationError(
                f"Cannot resume with part_size {effective}, checkpoint was made with {checkpoint.part_size}"
            )
    if copy_range.start_offset != checkpoint.start_offset:
        raise ValidationError(
            f"Cannot resume from offset {copy_range.start_offset}, checkpoint starts at {checkpoint.start_offset}"
        )
    if copy_range.copy_size != checkpoint.copy_size:
        raise ValidationError(
            f"Cannot resume a copy of {copy_range.copy_size} bytes from a checkpoint of {checkpoint.copy_size} bytes"
        )
