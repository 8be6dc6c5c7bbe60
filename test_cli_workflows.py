from __future__ import annotations

import os
import stat
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None):
        cmd = [sys.executable, "-m", "lzpack.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)

    def test_compress_info_decompress(self):
        data = b"hello container\n" * 500 + os.urandom(1000)
        src = self.root / "data.bin"
        src.write_bytes(data)

        proc = self.run_cli(["compress", str(src)])
        self.assertIn("Done: compressed", proc.stdout)
        container = self.root / "data.bin.lzma"
        self.assertTrue(container.exists())

        info = self.run_cli(["info", str(container)])
        self.assertIn(f"Uncompressed size: {len(data)}", info.stdout)
        self.assertIn("lc/lp/pb: 3/0/2", info.stdout)

        src.unlink()
        self.run_cli(["decompress", str(container), "--quiet"])
        self.assertEqual(src.read_bytes(), data)

    def test_custom_settings_and_output(self):
        src = self.root / "in.txt"
        src.write_bytes(b"abc" * 4000)
        out = self.root / "custom.lzma"
        self.run_cli(["compress", str(src), "-o", str(out), "--dict-size", "65536", "--lc", "0", "--lp", "2", "--pb", "0"])
        info = self.run_cli(["info", str(out)])
        self.assertIn("Dictionary size: 65536", info.stdout)
        self.assertIn("lc/lp/pb: 0/2/0", info.stdout)
        restored = self.root / "restored.txt"
        self.run_cli(["decompress", str(out), "-o", str(restored)])
        self.assertEqual(restored.read_bytes(), b"abc" * 4000)

    def test_existing_output_requires_force(self):
        src = self.root / "a.txt"
        src.write_text("alpha")
        self.run_cli(["compress", str(src)])
        proc = self.run_cli(["compress", str(src)], expect=2)
        self.assertIn("Destination exists", proc.stderr)
        self.run_cli(["compress", str(src), "--force"])

    def test_truncated_container_reports_error(self):
        bad = self.root / "bad.lzma"
        bad.write_bytes(b"\x5d\x00\x00\x40\x00\x01\x02")
        proc = self.run_cli(["decompress", str(bad)], expect=2)
        self.assertIn("not a valid container", proc.stderr)
        self.assertFalse((self.root / "bad").exists())

    def test_invalid_coder_settings(self):
        src = self.root / "a.txt"
        src.write_text("alpha")
        proc = self.run_cli(["compress", str(src), "--lc", "4", "--lp", "4"], expect=2)
        self.assertIn("Error:", proc.stderr)

    @unittest.skipIf(os.name == "nt", "POSIX modes only")
    def test_pack_unpack_preserves_exec_bit(self):
        tree = self.root / "tree"
        (tree / "scripts").mkdir(parents=True)
        tool = tree / "scripts" / "tool.sh"
        tool.write_text("#!/bin/sh\nexit 0\n")
        os.chmod(tool, 0o755)
        (tree / "readme.txt").write_text("docs\n")

        archive = self.root / "tree.zip"
        proc = self.run_cli(["pack", str(archive), str(tree)])
        self.assertIn("adding: scripts/tool.sh", proc.stdout)

        outdir = self.root / "out"
        proc = self.run_cli(["unpack", str(archive), "--outdir", str(outdir)])
        self.assertIn("Done: extracted 3 entries", proc.stdout)
        mode = stat.S_IMODE(os.stat(outdir / "scripts" / "tool.sh").st_mode)
        self.assertEqual(mode & 0o111, 0o111)
        self.assertEqual((outdir / "readme.txt").read_text(), "docs\n")

    def test_pack_requires_directory(self):
        f = self.root / "file.txt"
        f.write_text("x")
        proc = self.run_cli(["pack", str(self.root / "x.zip"), str(f)], expect=2)
        self.assertIn("Not a directory", proc.stderr)


if __name__ == "__main__":
    unittest.main()
