"""
lzpack: LZMA stream containers and POSIX permission bridging for ZIP entries.

Features:

- Self-describing container: 5 opaque coder property bytes, the uncompressed
  size as a little-endian u64, then a raw LZMA payload running to the end of
  the stream (no payload length field).
- Streaming encode/decode through a pluggable codec engine; the default engine
  is liblzma via the standard library ``lzma`` module.
- External attributes bridge: POSIX ``st_mode`` is recorded in bits 16..31 of
  a ZIP entry's external attributes and restored on extraction, leaving the
  archive-owned low bits untouched.
- CLI helpers to compress/decompress files and to pack/unpack directories.
"""

__version__ = "0.1"

__all__ = [
    "constants",
    "container",
    "engine",
    "attrs",
    "zipperm",
    "errors",
]

# Programmatic API: lzpack.container.compress/decompress for streams,
# lzpack.attrs.capture_into/apply_from for external attributes.
