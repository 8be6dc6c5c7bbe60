from __future__ import annotations

import os
import shutil
import time
import zipfile
from typing import Callable, List, Optional, Tuple

from .attrs import FileSystem, capture_into, apply_from
from .constants import DOS_DIRECTORY
from .pathutil import norm_path, arc_name


_CREATE_SYSTEM_UNIX = 3
_ZIP64_LIMIT = 0x7FFFFFFF


def _zip_time(mtime: float) -> Tuple[int, int, int, int, int, int]:
    # ZIP timestamps cannot predate 1980-01-01
    tm = time.localtime(mtime)[:6]
    if tm[0] < 1980:
        return (1980, 1, 1, 0, 0, 0)
    return tm


def _new_info(name: str, full: str, *, is_dir: bool, fs: Optional[FileSystem]) -> zipfile.ZipInfo:
    attrs = capture_into(DOS_DIRECTORY if is_dir else 0, full, fs=fs)
    zinfo = zipfile.ZipInfo(name, date_time=_zip_time(os.path.getmtime(full)))
    zinfo.create_system = _CREATE_SYSTEM_UNIX
    zinfo.external_attr = attrs
    return zinfo


def pack_directory(
    src_dir: str,
    dest_zip: str,
    *,
    compression: int = zipfile.ZIP_DEFLATED,
    fs: Optional[FileSystem] = None,
    on_entry: Optional[Callable[[str], None]] = None,
) -> int:
    """Write the tree under ``src_dir`` into a new ZIP at ``dest_zip``.

    Each entry records the source's POSIX mode in the high half of its
    external attributes. Symlinks to directories are omitted entirely: they
    get no entry, are not descended into, and are not reported to
    ``on_entry``. Symlinks to files are stored as the file they point to.
    Returns the number of entries written.
    """
    count = 0
    with zipfile.ZipFile(dest_zip, "w", compression) as zf:
        for root, dirnames, filenames in os.walk(src_dir):
            dirnames[:] = sorted(d for d in dirnames if not os.path.islink(os.path.join(root, d)))
            filenames.sort()
            for d in dirnames:
                full = os.path.join(root, d)
                name = arc_name(src_dir, full) + "/"
                zf.writestr(_new_info(name, full, is_dir=True, fs=fs), b"")
                count += 1
                if on_entry is not None:
                    on_entry(name)
            for f in filenames:
                full = os.path.join(root, f)
                name = arc_name(src_dir, full)
                zinfo = _new_info(name, full, is_dir=False, fs=fs)
                zinfo.compress_type = compression
                size = os.path.getsize(full)
                with open(full, "rb") as fsrc, zf.open(zinfo, "w", force_zip64=size > _ZIP64_LIMIT) as fdst:
                    shutil.copyfileobj(fsrc, fdst)
                count += 1
                if on_entry is not None:
                    on_entry(name)
    return count


def extract_archive(
    src_zip: str,
    dest_dir: str,
    *,
    fs: Optional[FileSystem] = None,
    on_entry: Optional[Callable[[str], None]] = None,
) -> int:
    """Extract ``src_zip`` under ``dest_dir`` and restore stored POSIX modes.

    Directory modes are applied last, deepest first, so read-only directories
    do not block writing their contents. Any failure aborts the extraction.
    Returns the number of entries extracted.
    """
    count = 0
    dirs: List[Tuple[str, str, int]] = []
    with zipfile.ZipFile(src_zip) as zf:
        for info in zf.infolist():
            rel = norm_path(info.filename)
            if not rel:
                continue
            dst = os.path.join(dest_dir, *rel.split("/"))
            if info.is_dir():
                os.makedirs(dst, exist_ok=True)
                dirs.append((rel, dst, info.external_attr))
            else:
                os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
                with zf.open(info) as fsrc, open(dst, "wb") as fdst:
                    shutil.copyfileobj(fsrc, fdst)
                apply_from(info.external_attr, dst, fs=fs)
            count += 1
            if on_entry is not None:
                on_entry(rel)
    for rel, dst, attrs in sorted(dirs, key=lambda d: d[0].count("/"), reverse=True):
        apply_from(attrs, dst, fs=fs)
    return count
