from __future__ import annotations

import os
import stat
from typing import Optional, Union

from .constants import MODE_SHIFT, LOW_MASK, ATTR_MASK
from .errors import LookupFailure, ApplyFailure


class ExternalAttributes:
    """A ZIP entry's 32-bit external attributes field.

    The low 16 bits are owned by the archive format (MS-DOS attribute bits);
    the high 16 bits hold a POSIX ``st_mode``. ``merge_mode`` is the only way
    to derive a new value, so the low half cannot be overwritten by accident.
    """

    __slots__ = ("_value",)

    def __init__(self, value: int = 0):
        if not (0 <= value <= ATTR_MASK):
            raise ValueError(f"external attributes must fit in 32 bits: {value:#x}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    @property
    def low_attribute_bits(self) -> int:
        return self._value & LOW_MASK

    @property
    def posix_mode(self) -> int:
        return (self._value >> MODE_SHIFT) & LOW_MASK

    def merge_mode(self, mode: int) -> "ExternalAttributes":
        # Additive: bits already present in either half are kept
        return ExternalAttributes(self._value | ((mode & LOW_MASK) << MODE_SHIFT))

    def __int__(self) -> int:
        return self._value

    def __eq__(self, other) -> bool:
        if isinstance(other, ExternalAttributes):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"ExternalAttributes(0x{self._value:08x}, mode=0o{self.posix_mode:o})"


AttrLike = Union[int, ExternalAttributes]


class FileSystem:
    """The stat/chmod surface the attribute bridge talks to."""

    def stat_mode(self, path: str) -> int:
        raise NotImplementedError

    def chmod(self, path: str, mode: int) -> None:
        raise NotImplementedError


class OsFileSystem(FileSystem):
    def stat_mode(self, path: str) -> int:
        return os.stat(path).st_mode

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(path, mode)


_DEFAULT_FS = OsFileSystem()


def capture_into(entry_attributes: AttrLike, source_path: str, *, fs: Optional[FileSystem] = None) -> int:
    """Merge the POSIX mode of ``source_path`` into the high half of ``entry_attributes``.

    Args:
        entry_attributes: Current 32-bit external attributes of the entry.
        source_path: Filesystem object whose mode is recorded.
        fs: Filesystem port; defaults to the real one.

    Returns:
        ``entry_attributes | (mode << 16)``; bits 0..15 are unchanged.

    Raises:
        LookupFailure: ``source_path`` is missing or cannot be stat'ed.
    """
    fs = fs or _DEFAULT_FS
    attrs = ExternalAttributes(int(entry_attributes))
    try:
        mode = fs.stat_mode(source_path)
    except OSError as e:
        raise LookupFailure(source_path, e) from e
    return attrs.merge_mode(mode).value


def apply_from(entry_attributes: AttrLike, destination_path: str, *, fs: Optional[FileSystem] = None) -> int:
    """Apply the mode stored in ``entry_attributes`` onto ``destination_path``.

    The stored mode is OR'd with the mode the freshly created object already
    has, so default bits set by the filesystem survive. Returns the permission
    bits that were applied.

    Raises:
        ApplyFailure: the destination cannot be stat'ed or chmod rejects the mode.
    """
    fs = fs or _DEFAULT_FS
    attrs = ExternalAttributes(int(entry_attributes))
    try:
        current = fs.stat_mode(destination_path)
    except OSError as e:
        raise ApplyFailure(destination_path, e) from e
    new_mode = stat.S_IMODE(current | attrs.posix_mode)
    try:
        fs.chmod(destination_path, new_mode)
    except OSError as e:
        raise ApplyFailure(destination_path, e) from e
    return new_mode
