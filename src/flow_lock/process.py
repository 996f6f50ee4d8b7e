"""Subprocess wrapper — the single mock seam for all tests."""

import subprocess
from dataclasses import dataclass


@dataclass
class Result:
    returncode: int
    stdout: str
    stderr: str


def run(args: list[str], input: str | None = None) -> Result:
    """Run a command and capture output. Never raises on non-zero exit."""
    proc = subprocess.run(
        args,
        input=input,
        capture_output=True,
        text=True,
    )
    return Result(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def run_streaming(args: list[str]) -> int:
    """Run a command with passthrough stdout/stderr. Returns exit code."""
    proc = subprocess.run(args)
    return proc.returncode
