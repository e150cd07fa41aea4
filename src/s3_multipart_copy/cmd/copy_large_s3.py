import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from s3_multipart_copy.config import Config, find_conf_file
from s3_multipart_copy.errors import CopyCancelled, CopyError
from s3_multipart_copy.log import configure_logging
from s3_multipart_copy.s3.api import S3Client
from s3_multipart_copy.s3.create import S3Config
from s3_multipart_copy.s3.multipart.checkpoint import Checkpoint
from s3_multipart_copy.s3.multipart.copy_orchestrator import CopyOptions
from s3_multipart_copy.s3.multipart.job_pool import DEFAULT_MAX_WORKERS
from s3_multipart_copy.s3.types import CopySource
from s3_multipart_copy.types import SizeSuffix
from s3_multipart_copy.util import locked_print, split_s3_path

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130


@dataclass
class Args:
    config_path: Path
    src: str  # remote:bucket/path/to/object
    dst: str
    part_size: SizeSuffix | None
    parallel: int
    resume_json: Path
    verbose: bool


def _parse_args(argv: list[str] | None = None) -> Args:
    parser = argparse.ArgumentParser(
        description="Server side multipart copy of a large object, resumable."
    )
    parser.add_argument("src", help="Source object, remote:bucket/key")
    parser.add_argument("dst", help="Destination object, remote:bucket/key")
    parser.add_argument("-v", "--verbose", help="Verbose output", action="store_true")
    parser.add_argument(
        "--config", help="Path to rclone config file", type=Path, required=False
    )
    parser.add_argument(
        "--part-size",
        help="Part size in SizeSuffix form (e.g. 64MB), defaults to 1MB grown to fit 10000 parts",
        type=str,
        default=None,
    )
    parser.add_argument(
        "--parallel",
        help="Max number of parts copied at the same time",
        type=int,
        default=DEFAULT_MAX_WORKERS,
    )
    parser.add_argument(
        "--resume-json",
        help="Path to the checkpoint JSON file, an existing file resumes the copy",
        type=Path,
        default=Path("resume.json"),
    )

    args = parser.parse_args(argv)
    config: Path | None = args.config or find_conf_file()
    if config is None or not config.exists():
        raise FileNotFoundError(f"Config file not found: {config or 'rclone.conf'}")
    return Args(
        config_path=config,
        src=args.src,
        dst=args.dst,
        part_size=SizeSuffix(args.part_size) if args.part_size else None,
        parallel=args.parallel,
        resume_json=args.resume_json,
        verbose=args.verbose,
    )


def _load_checkpoint(path: Path) -> Checkpoint | None:
    if not path.exists():
        return None
    checkpoint = Checkpoint.from_json_str(path.read_text(encoding="utf-8"))
    locked_print(
        f"Resuming from {path}: {len(checkpoint.done_parts)} parts already copied"
    )
    return checkpoint


def _make_progress(path: Path, verbose: bool):
    def progress(ratio: float, checkpoint: Checkpoint, raw: Any) -> None:
        path.write_text(checkpoint.to_json_str(), encoding="utf-8")
        if verbose:
            locked_print(f"{checkpoint.target_name}: {ratio * 100:.2f}%")

    return progress


def run(args: Args) -> int:
    src = split_s3_path(args.src)
    dst = split_s3_path(args.dst)
    if src.remote != dst.remote:
        raise ValueError(
            f"Server side copy needs both objects on one remote, got {src.remote} and {dst.remote}"
        )
    section = Config.from_path(args.config_path).section(dst.remote)
    client = S3Client(
        section.s3_credentials(),
        S3Config(verbose=args.verbose, max_pool_connections=args.parallel),
    )
    options = CopyOptions(
        part_size=args.part_size.as_int() if args.part_size else None,
        parallel=args.parallel,
        checkpoint=_load_checkpoint(args.resume_json),
        progress=_make_progress(args.resume_json, args.verbose),
    )
    source = CopySource(bucket=src.bucket, key=src.key)

    with client.copier(dst.bucket) as copier:
        fut = copier.submit(source, dst.key, options)
        try:
            try:
                result = fut.result()
            except KeyboardInterrupt:
                locked_print("Cancelling, waiting for in flight parts to finish...")
                copier.cancel()
                result = fut.result()
        except CopyCancelled:
            locked_print(f"Copy cancelled, resume with --resume-json {args.resume_json}")
            return EXIT_CANCELLED
        except CopyError as e:
            locked_print(f"Error: {e}")
            if args.resume_json.exists():
                locked_print(f"Resume with --resume-json {args.resume_json}")
            return 1

    args.resume_json.unlink(missing_ok=True)
    locked_print(f"Copied {args.src} -> {result.location}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    args = _parse_args(argv)
    if args.verbose:
        configure_logging(logging.DEBUG)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
