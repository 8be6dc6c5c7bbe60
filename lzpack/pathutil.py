from __future__ import annotations

import os


def norm_path(p: str) -> str:
    """Normalize a ZIP member name to a canonical forward-slash form.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes (absolute names become relative)
    - Drop empty and '.' segments
    - Reject '..' segments and drive-qualified names
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError(f"Path may not contain '..': {p!r}")
    if parts and len(parts[0]) == 2 and parts[0][1] == ":":
        raise ValueError(f"Path may not carry a drive letter: {p!r}")
    return "/".join(parts)


def arc_name(root: str, full: str) -> str:
    """Archive name of ``full`` relative to ``root`` in canonical form."""
    return norm_path(os.path.relpath(full, start=root).replace(os.sep, "/"))
