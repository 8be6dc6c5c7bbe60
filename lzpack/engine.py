from __future__ import annotations

import lzma
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .constants import (
    PROPERTIES_SIZE,
    DEFAULT_DICT_SIZE,
    DEFAULT_LC,
    DEFAULT_LP,
    DEFAULT_PB,
    DEFAULT_PRESET,
    DEFAULT_CHUNK_SIZE,
    MAX_LC,
    MAX_LP,
    MAX_PB,
)
from .errors import CodecFailure


_PROPS_STRUCT = struct.Struct("<BI")

# liblzma limits for LZMA1
_LCLP_MAX = 4
_DICT_SIZE_MIN = 4096


@dataclass(frozen=True)
class LzmaProperties:
    dict_size: int
    lc: int
    lp: int
    pb: int


def pack_properties(dict_size: int, lc: int, lp: int, pb: int) -> bytes:
    """Encode LZMA1 coder settings into the 5-byte properties block.

    Byte 0 packs the literal/position context bits as ``(pb * 5 + lp) * 9 + lc``,
    bytes 1..4 carry the dictionary size as a little-endian u32.
    """
    if not (0 <= lc <= MAX_LC and 0 <= lp <= MAX_LP and 0 <= pb <= MAX_PB):
        raise ValueError(f"lc/lp/pb out of range: lc={lc} lp={lp} pb={pb}")
    if not (0 <= dict_size <= 0xFFFFFFFF):
        raise ValueError(f"dictionary size out of range: {dict_size}")
    return _PROPS_STRUCT.pack((pb * 5 + lp) * 9 + lc, dict_size)


def unpack_properties(props: bytes) -> LzmaProperties:
    if len(props) != PROPERTIES_SIZE:
        raise CodecFailure(f"properties block must be {PROPERTIES_SIZE} bytes, got {len(props)}")
    d, dict_size = _PROPS_STRUCT.unpack(props)
    if d >= (MAX_PB + 1) * (MAX_LP + 1) * (MAX_LC + 1):
        raise CodecFailure(f"invalid properties byte: 0x{d:02x}")
    lc = d % 9
    d //= 9
    return LzmaProperties(dict_size=dict_size, lc=lc, lp=d % 5, pb=d // 5)


class CodecEngine:
    """Streaming compressor port consumed by the container codec.

    Implementations own the meaning of the properties block; the container
    copies it verbatim.
    """

    def encode_properties(self) -> bytes:
        raise NotImplementedError

    def encode_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        """Compress ``src`` to EOF into ``dst``; return the number of bytes consumed."""
        raise NotImplementedError

    def decode_stream(
        self,
        properties: bytes,
        src: BinaryIO,
        dst: BinaryIO,
        compressed_size: int,
        output_size: Optional[int],
    ) -> None:
        """Decode at most ``compressed_size`` bytes of ``src`` into exactly ``output_size`` bytes.

        ``output_size=None`` decodes until the end-of-payload marker.
        """
        raise NotImplementedError


class LzmaEngine(CodecEngine):
    """LZMA1 engine backed by liblzma through the stdlib ``lzma`` module (raw format)."""

    def __init__(
        self,
        *,
        preset: int = DEFAULT_PRESET,
        dict_size: int = DEFAULT_DICT_SIZE,
        lc: int = DEFAULT_LC,
        lp: int = DEFAULT_LP,
        pb: int = DEFAULT_PB,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if lc + lp > _LCLP_MAX:
            raise ValueError(f"lc + lp must not exceed {_LCLP_MAX}")
        if dict_size < _DICT_SIZE_MIN:
            raise ValueError(f"dictionary size must be at least {_DICT_SIZE_MIN} bytes")
        if chunk_size <= 0:
            raise ValueError("chunk size must be positive")
        self._props = pack_properties(dict_size, lc, lp, pb)
        self.preset = preset
        self.dict_size = dict_size
        self.lc = lc
        self.lp = lp
        self.pb = pb
        self.chunk_size = chunk_size

    def encode_properties(self) -> bytes:
        return self._props

    def _encoder_filters(self) -> list:
        return [
            {
                "id": lzma.FILTER_LZMA1,
                "preset": self.preset,
                "dict_size": self.dict_size,
                "lc": self.lc,
                "lp": self.lp,
                "pb": self.pb,
            }
        ]

    @staticmethod
    def _decoder_filters(properties: bytes) -> list:
        p = unpack_properties(properties)
        return [{"id": lzma.FILTER_LZMA1, "dict_size": p.dict_size, "lc": p.lc, "lp": p.lp, "pb": p.pb}]

    def encode_stream(self, src: BinaryIO, dst: BinaryIO) -> int:
        try:
            comp = lzma.LZMACompressor(format=lzma.FORMAT_RAW, filters=self._encoder_filters())
        except (lzma.LZMAError, ValueError) as e:
            raise CodecFailure(f"lzma encoder rejected settings: {e}") from e
        consumed = 0
        try:
            while True:
                buf = src.read(self.chunk_size)
                if not buf:
                    break
                consumed += len(buf)
                out = comp.compress(buf)
                if out:
                    dst.write(out)
            dst.write(comp.flush())
        except lzma.LZMAError as e:
            raise CodecFailure(f"lzma compression failed: {e}") from e
        return consumed

    def decode_stream(
        self,
        properties: bytes,
        src: BinaryIO,
        dst: BinaryIO,
        compressed_size: int,
        output_size: Optional[int],
    ) -> None:
        try:
            decomp = lzma.LZMADecompressor(format=lzma.FORMAT_RAW, filters=self._decoder_filters(properties))
        except (lzma.LZMAError, ValueError) as e:
            raise CodecFailure(f"lzma decoder rejected properties: {e}") from e

        remaining_in = compressed_size
        produced = 0
        try:
            while output_size is None or produced < output_size:
                buf = b""
                if decomp.needs_input:
                    if remaining_in <= 0:
                        break
                    buf = src.read(min(self.chunk_size, remaining_in))
                    if not buf:
                        break
                    remaining_in -= len(buf)
                limit = self.chunk_size
                if output_size is not None:
                    limit = min(limit, output_size - produced)
                out = decomp.decompress(buf, max_length=limit)
                if out:
                    dst.write(out)
                    produced += len(out)
                if decomp.eof:
                    break
        except lzma.LZMAError as e:
            raise CodecFailure(f"corrupted lzma payload after {produced} output bytes: {e}") from e

        if output_size is None:
            if not decomp.eof:
                raise CodecFailure(f"lzma payload ended without an end marker after {produced} bytes")
        elif produced < output_size:
            raise CodecFailure(f"lzma payload ended after {produced} of {output_size} declared bytes")
