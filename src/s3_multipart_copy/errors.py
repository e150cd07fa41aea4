class CopyError(Exception):
    """Base class for failures of a multipart copy."""


class ValidationError(CopyError, ValueError):
    """Bad sizes or a mismatched checkpoint, raised before any remote call."""


class CollaboratorError(CopyError):
    """A remote operation (head, initiate, copy part, complete) failed."""

    def __init__(self, phase: str, cause: BaseException | None = None, msg: str = ""):
        self.phase = phase
        self.cause = cause
        if not msg:
            msg = f"{phase} failed: {cause}"
        super().__init__(msg)


class PartCopyError(CollaboratorError):
    def __init__(
        self, part_number: int, cause: BaseException | None = None, msg: str = ""
    ):
        self.part_number = part_number
        if not msg:
            msg = f"copy of part {part_number} failed: {cause}"
        super().__init__(phase="copy_part", cause=cause, msg=msg)


class CopyPartsFailed(CopyError):
    """One or more parts failed, the checkpoint still holds every part that made it."""

    def __init__(self, part_number: int, cause: BaseException):
        self.part_number = part_number
        self.cause = cause
        super().__init__(
            f"Failed to copy some parts with error: {cause} part_num: {part_number}"
        )


class CopyCancelled(Exception):
    """The caller asked for the copy to stop. Not a CopyError."""

    def __init__(self, msg: str = "multipart copy cancelled"):
        super().__init__(msg)
