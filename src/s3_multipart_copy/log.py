import logging
import os
import sys
import warnings

LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
# overrides the import time default, e.g. S3_MULTIPART_COPY_LOG_LEVEL=DEBUG
LOG_LEVEL_ENV = "S3_MULTIPART_COPY_LOG_LEVEL"

# boto3 logs every request at DEBUG, which buries the per part messages
_NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3")

_INITIALISED = False


def _env_level(default: int) -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        warnings.warn(f"{LOG_LEVEL_ENV}={name} is not a logging level, using the default")
        return default
    return level


def _quiet_sdk_loggers(level: int) -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_default_logging():
    """Log to stdout at INFO unless the application configured logging first."""
    global _INITIALISED
    if _INITIALISED:
        return
    _INITIALISED = True
    if logging.root.handlers:
        return
    logging.basicConfig(
        level=_env_level(logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    _quiet_sdk_loggers(logging.WARNING)


def configure_logging(level=logging.INFO, log_file=None, sdk_level=logging.WARNING):
    """Configure logging for a copy run, replacing any existing setup.

    Args:
        level: level for this package and the root logger
        log_file: optional path, messages go there as well as to stdout
        sdk_level: level for boto3, botocore and urllib3
    """
    global _INITIALISED
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    _quiet_sdk_loggers(sdk_level)
    _INITIALISED = True


setup_default_logging()
