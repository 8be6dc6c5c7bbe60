class LzpackError(Exception):
    """Base class for lzpack-specific errors."""


# Container/codec related
class MalformedContainer(LzpackError):
    pass


class StreamLengthUnknown(LzpackError):
    pass


class CodecFailure(LzpackError):
    pass


# Filesystem metadata
class _PathFailure(LzpackError):
    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(f"{self._action} {path}: {reason}")


class LookupFailure(_PathFailure):
    _action = "cannot read metadata for"


class ApplyFailure(_PathFailure):
    _action = "cannot apply mode to"
