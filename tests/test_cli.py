import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
CLI = [sys.executable, str(ROOT / "src" / "iotail" / "cli.py")]
ENV = os.environ.copy()
ENV["PYTHONPATH"] = str(ROOT / "src")
EMIT_LINES = ROOT / "tests" / "helpers" / "emit_lines.py"


class TestCLI(unittest.TestCase):
    def test_last_lines_of_file(self):
        with tempfile.TemporaryDirectory() as td:
            log = Path(td) / "app.log"
            log.write_bytes(b"".join(f"line{i}\n".encode() for i in range(10)))
            cmd = CLI + ["-n", "3", "--return-if-eof", str(log)]
            result = subprocess.run(cmd, env=ENV, capture_output=True, timeout=30)
            self.assertEqual(result.returncode, 0, msg=result.stderr)
            self.assertEqual(result.stdout, b"line7\nline8\nline9\n")

    def test_last_lines_of_file_without_trailing_newline(self):
        with tempfile.TemporaryDirectory() as td:
            log = Path(td) / "app.log"
            log.write_bytes(b"line0\nline1\nline2\nline3")
            cmd = CLI + ["-n", "3", "--return-if-eof", str(log)]
            result = subprocess.run(cmd, env=ENV, capture_output=True, timeout=30)
            self.assertEqual(result.returncode, 0, msg=result.stderr)
            self.assertEqual(result.stdout, b"line1\nline2\nline3")

    def test_command_with_limit(self):
        cmd = CLI + ["--limit", "2", "--max-interval", "0.05", "--command", f'"{sys.executable}" "{EMIT_LINES}" a b c']
        result = subprocess.run(cmd, env=ENV, capture_output=True, timeout=30)
        self.assertEqual(result.returncode, 0, msg=result.stderr)
        self.assertEqual(result.stdout, b"a\nb\n")

    def test_missing_file_fails(self):
        with tempfile.TemporaryDirectory() as td:
            cmd = CLI + ["--return-if-eof", str(Path(td) / "absent.log")]
            result = subprocess.run(cmd, env=ENV, capture_output=True, timeout=30)
            self.assertEqual(result.returncode, 1)
            self.assertIn(b"cannot open", result.stderr)

    def test_requires_exactly_one_source(self):
        result = subprocess.run(CLI, env=ENV, capture_output=True, timeout=30)
        self.assertEqual(result.returncode, 2)


if __name__ == "__main__":
    unittest.main()
