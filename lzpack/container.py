from __future__ import annotations

import io
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .constants import PROPERTIES_SIZE, SIZE_FIELD_SIZE, HEADER_SIZE, UNKNOWN_SIZE
from .engine import CodecEngine, LzmaEngine
from .errors import MalformedContainer, StreamLengthUnknown, CodecFailure


_SIZE_STRUCT = struct.Struct("<Q")
# Layout (little endian): properties[5], uncompressed_size u64, then the raw payload
# running to the end of the stream. There is no payload length field.


@dataclass
class ContainerHeader:
    properties: bytes
    uncompressed_size: int

    @property
    def size_known(self) -> bool:
        return self.uncompressed_size != UNKNOWN_SIZE

    def pack(self) -> bytes:
        if len(self.properties) != PROPERTIES_SIZE:
            raise CodecFailure(
                f"engine produced {len(self.properties)} property bytes, expected {PROPERTIES_SIZE}"
            )
        return bytes(self.properties) + _SIZE_STRUCT.pack(self.uncompressed_size)


def read_exact(f: BinaryIO, n: int) -> bytes:
    """Read up to ``n`` bytes, looping over short reads; fewer only at EOF."""
    buf = bytearray()
    while len(buf) < n:
        part = f.read(n - len(buf))
        if not part:
            break
        buf += part
    return bytes(buf)


def remaining_length(f: BinaryIO) -> int:
    """Return the byte count between the current position and the end of ``f``.

    The position is restored. Streams that cannot seek raise StreamLengthUnknown.
    """
    try:
        if not f.seekable():
            raise StreamLengthUnknown("stream is not seekable; pass its length explicitly")
        pos = f.tell()
        end = f.seek(0, os.SEEK_END)
        f.seek(pos)
    except (OSError, AttributeError) as e:
        raise StreamLengthUnknown(f"cannot determine stream length: {e}") from e
    return max(0, end - pos)


def read_header(f: BinaryIO) -> ContainerHeader:
    props = read_exact(f, PROPERTIES_SIZE)
    if len(props) != PROPERTIES_SIZE:
        raise MalformedContainer("input is too short to be a valid container")
    raw = read_exact(f, SIZE_FIELD_SIZE)
    if len(raw) != SIZE_FIELD_SIZE:
        raise MalformedContainer("cannot read size field")
    (size,) = _SIZE_STRUCT.unpack(raw)
    return ContainerHeader(properties=props, uncompressed_size=size)


class _BoundedWriter:
    """Pass-through writer that counts bytes and refuses any past ``limit``."""

    def __init__(self, dst: BinaryIO, limit: int):
        self._dst = dst
        self.limit = limit
        self.written = 0

    def write(self, data) -> int:
        n = len(data)
        if self.written + n > self.limit:
            raise CodecFailure(f"engine produced more than the {self.limit} declared bytes")
        self.written += n
        self._dst.write(data)
        return n


def compress(
    src: BinaryIO,
    dst: BinaryIO,
    *,
    engine: Optional[CodecEngine] = None,
    size: Optional[int] = None,
) -> ContainerHeader:
    """Write ``src`` (from its current position to EOF) to ``dst`` as a container.

    Args:
        src: Readable source; consumed fully, not closed.
        dst: Writable destination; not closed.
        engine: Codec engine; defaults to LzmaEngine().
        size: Byte count ``src`` will yield. Required when ``src`` cannot seek.

    Returns:
        The header that was written.
    """
    if engine is None:
        engine = LzmaEngine()
    if size is None:
        size = remaining_length(src)
    if not (0 <= size < UNKNOWN_SIZE):
        raise ValueError(f"uncompressed size out of range: {size}")
    header = ContainerHeader(properties=engine.encode_properties(), uncompressed_size=size)
    dst.write(header.pack())
    consumed = engine.encode_stream(src, dst)
    if consumed != size:
        raise CodecFailure(f"source yielded {consumed} bytes but {size} were declared in the header")
    return header


def decompress(
    src: BinaryIO,
    dst: BinaryIO,
    *,
    engine: Optional[CodecEngine] = None,
    compressed_size: Optional[int] = None,
) -> ContainerHeader:
    """Decode the container at the current position of ``src`` into ``dst``.

    The payload length is whatever follows the 13-byte header up to the end of
    ``src``, unless ``compressed_size`` delimits it explicitly.
    """
    if engine is None:
        engine = LzmaEngine()
    header = read_header(src)
    if compressed_size is None:
        compressed_size = remaining_length(src)
    if not header.size_known:
        engine.decode_stream(header.properties, src, dst, compressed_size, None)
        return header
    out = _BoundedWriter(dst, header.uncompressed_size)
    engine.decode_stream(header.properties, src, out, compressed_size, header.uncompressed_size)
    if out.written != header.uncompressed_size:
        raise CodecFailure(
            f"engine produced {out.written} of {header.uncompressed_size} declared bytes"
        )
    return header


def compress_bytes(data: bytes, *, engine: Optional[CodecEngine] = None) -> bytes:
    out = io.BytesIO()
    compress(io.BytesIO(data), out, engine=engine, size=len(data))
    return out.getvalue()


def decompress_bytes(blob: bytes, *, engine: Optional[CodecEngine] = None) -> bytes:
    out = io.BytesIO()
    src = io.BytesIO(blob)
    decompress(src, out, engine=engine)
    return out.getvalue()


def _run_file(fn, input_path: str, output_path: str, engine: Optional[CodecEngine]) -> ContainerHeader:
    with open(input_path, "rb") as fin:
        # Only a file this call created or truncated may be removed on failure
        fout = open(output_path, "wb")
        try:
            with fout:
                return fn(fin, fout, engine=engine)
        except BaseException:
            try:
                os.remove(output_path)
            except OSError:
                pass
            raise


def compress_file(input_path: str, output_path: str, *, engine: Optional[CodecEngine] = None) -> ContainerHeader:
    """Compress the file at ``input_path`` into a container file at ``output_path``."""
    return _run_file(compress, input_path, output_path, engine)


def decompress_file(input_path: str, output_path: str, *, engine: Optional[CodecEngine] = None) -> ContainerHeader:
    """Decode the container file at ``input_path`` into ``output_path``."""
    return _run_file(decompress, input_path, output_path, engine)
