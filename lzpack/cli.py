from __future__ import annotations

import os
import sys
import time
import argparse
from typing import List, Optional

from lzpack.constants import (
    HEADER_SIZE,
    DEFAULT_DICT_SIZE,
    DEFAULT_LC,
    DEFAULT_LP,
    DEFAULT_PB,
    DEFAULT_PRESET,
)
from lzpack.container import compress_file, decompress_file, read_header, remaining_length
from lzpack.engine import LzmaEngine, unpack_properties
from lzpack.errors import LzpackError, MalformedContainer, CodecFailure
from lzpack.zipperm import pack_directory, extract_archive


_SUFFIX = ".lzma"


def _default_output(path: str, *, decompress: bool) -> str:
    if not decompress:
        return path + _SUFFIX
    if path.lower().endswith(_SUFFIX) and len(path) > len(_SUFFIX):
        return path[: -len(_SUFFIX)]
    return path + ".out"


def _check_destination(path: str, force: bool) -> None:
    if os.path.exists(path) and not force:
        raise FileExistsError(f"Destination exists: {path} (use --force to overwrite)")


def _summary(verb: str, src: str, dst: str, n_in: int, n_out: int, t0: float) -> None:
    dt = max(0.000001, time.time() - t0)
    ratio = (n_out / n_in * 100.0) if n_in else 0.0
    print(f"Done: {verb} {src} -> {dst}; {n_in} -> {n_out} bytes ({ratio:.1f}%) in {dt:.2f}s")


def cmd_compress(
    input_path: str,
    output: Optional[str] = None,
    *,
    preset: int = DEFAULT_PRESET,
    dict_size: int = DEFAULT_DICT_SIZE,
    lc: int = DEFAULT_LC,
    lp: int = DEFAULT_LP,
    pb: int = DEFAULT_PB,
    force: bool = False,
    quiet: bool = False,
) -> bool:
    """Compress a single file into a container.

    Args:
        input_path: File to compress.
        output: Container path; defaults to ``input_path + '.lzma'``.
        preset: liblzma preset (0-9) the coder settings start from.
        dict_size: Dictionary size in bytes.
        lc, lp, pb: Literal context, literal position and position bits.
        force: Overwrite an existing output file.
    """
    out = output or _default_output(input_path, decompress=False)
    _check_destination(out, force)
    engine = LzmaEngine(preset=preset, dict_size=dict_size, lc=lc, lp=lp, pb=pb)
    t0 = time.time()
    if not quiet:
        print(f" compressing: {input_path}")
    header = compress_file(input_path, out, engine=engine)
    _summary("compressed", input_path, out, header.uncompressed_size, os.path.getsize(out), t0)
    return True


def cmd_decompress(input_path: str, output: Optional[str] = None, *, force: bool = False, quiet: bool = False) -> bool:
    """Decode a container file back to its original bytes."""
    out = output or _default_output(input_path, decompress=True)
    _check_destination(out, force)
    t0 = time.time()
    if not quiet:
        print(f" decompressing: {input_path}")
    decompress_file(input_path, out)
    _summary("decompressed", input_path, out, os.path.getsize(input_path), os.path.getsize(out), t0)
    return True


def cmd_info(input_path: str) -> bool:
    """Print the container header without decoding the payload."""
    with open(input_path, "rb") as f:
        header = read_header(f)
        payload = remaining_length(f)
    print(f"Container: {input_path}")
    print(f"  Properties: {header.properties.hex()}")
    try:
        p = unpack_properties(header.properties)
        print(f"    Dictionary size: {p.dict_size}")
        print(f"    lc/lp/pb: {p.lc}/{p.lp}/{p.pb}")
    except CodecFailure as exc:
        print(f"Warning: {exc}", file=sys.stderr)
    if header.size_known:
        print(f"  Uncompressed size: {header.uncompressed_size}")
    else:
        print("  Uncompressed size: unknown (end marker)")
    print(f"  Payload size: {payload}")
    print(f"  Header size: {HEADER_SIZE}")
    return True


def cmd_pack(output: str, src_dir: str, *, force: bool = False, quiet: bool = False) -> bool:
    """Create a ZIP from a directory, recording POSIX modes in each entry."""
    if not os.path.isdir(src_dir):
        raise NotADirectoryError(f"Not a directory: {src_dir}")
    _check_destination(output, force)
    t0 = time.time()

    def _progress(name: str) -> None:
        if not quiet:
            print(f"     adding: {name}")

    n = pack_directory(src_dir, output, on_entry=_progress)
    dt = max(0.000001, time.time() - t0)
    print(f"Done: {n} entries -> {output} in {dt:.1f}s")
    return True


def cmd_unpack(archive: str, *, outdir: str = ".", quiet: bool = False) -> bool:
    """Extract a ZIP and restore the POSIX modes stored in its entries."""
    os.makedirs(outdir, exist_ok=True)
    t0 = time.time()

    def _progress(name: str) -> None:
        if not quiet:
            print(f" extracting: {name}")

    n = extract_archive(archive, outdir, on_entry=_progress)
    dt = max(0.000001, time.time() - t0)
    print(f"Done: extracted {n} entries into {outdir} in {dt:.1f}s")
    return True


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="lzpack",
        description="LZMA container and permission-preserving ZIP tool",
        epilog=(
            "Containers are a 13-byte header (5 property bytes + 8-byte size) followed by raw LZMA data."
        ),
    )
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_c = sub.add_parser("compress", help="Compress a file into a container")
    ap_c.add_argument("input", help="File to compress")
    ap_c.add_argument("-o", "--output", help="Output path (default: INPUT.lzma)")
    ap_c.add_argument("--preset", type=int, choices=range(10), default=DEFAULT_PRESET, metavar="0-9", help="liblzma preset (default 6)")
    ap_c.add_argument("--dict-size", type=int, default=DEFAULT_DICT_SIZE, help="Dictionary size in bytes (default 4 MiB)")
    ap_c.add_argument("--lc", type=int, default=DEFAULT_LC, help="Literal context bits (default 3)")
    ap_c.add_argument("--lp", type=int, default=DEFAULT_LP, help="Literal position bits (default 0)")
    ap_c.add_argument("--pb", type=int, default=DEFAULT_PB, help="Position bits (default 2)")
    ap_c.add_argument("--force", "-f", action="store_true", help="Overwrite the output if it exists")
    ap_c.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_d = sub.add_parser("decompress", help="Decode a container")
    ap_d.add_argument("input", help="Container path")
    ap_d.add_argument("-o", "--output", help="Output path (default: INPUT without .lzma)")
    ap_d.add_argument("--force", "-f", action="store_true", help="Overwrite the output if it exists")
    ap_d.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_i = sub.add_parser("info", help="Show container header")
    ap_i.add_argument("input", help="Container path")

    ap_p = sub.add_parser("pack", help="Zip a directory, preserving POSIX modes")
    ap_p.add_argument("output", help="ZIP path to create")
    ap_p.add_argument("src", help="Directory to pack")
    ap_p.add_argument("--force", "-f", action="store_true", help="Overwrite the output if it exists")
    ap_p.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_u = sub.add_parser("unpack", help="Extract a ZIP, restoring POSIX modes")
    ap_u.add_argument("archive", help="ZIP path")
    ap_u.add_argument("--outdir", default=".", help="Output directory")
    ap_u.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    try:
        if args.cmd == "compress":
            cmd_compress(
                args.input,
                args.output,
                preset=args.preset,
                dict_size=args.dict_size,
                lc=args.lc,
                lp=args.lp,
                pb=args.pb,
                force=args.force,
                quiet=args.quiet,
            )
        elif args.cmd == "decompress":
            cmd_decompress(args.input, args.output, force=args.force, quiet=args.quiet)
        elif args.cmd == "info":
            cmd_info(args.input)
        elif args.cmd == "pack":
            cmd_pack(args.output, args.src, force=args.force, quiet=args.quiet)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, outdir=args.outdir, quiet=args.quiet)
        else:
            raise RuntimeError("Unknown command")
    except MalformedContainer as e:
        print(f"Error: not a valid container: {e}", file=sys.stderr)
        sys.exit(2)
    except (LzpackError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
