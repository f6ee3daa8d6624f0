"""Checks files against the metadata of the rpm or dpkg package that owns them."""

from __future__ import annotations

import enum
import shutil
import subprocess
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

CommandRunner = Callable[[Sequence[str], bool], str]
ProgramLocator = Callable[[str], Optional[str]]


class VerificationStatus(enum.Enum):
    """Outcome of verifying one file."""

    OK = "ok"
    MODIFIED = "modified"
    MISSING = "missing"
    NOT_PACKAGED = "not_packaged"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VerificationResult:
    """A verification status with the owning package and any details."""

    status: VerificationStatus
    package_name: Optional[str] = None
    expected_hash: Optional[str] = None
    actual_hash: Optional[str] = None
    error: Optional[str] = None


def run_command(argv: Sequence[str], merge_stderr: bool) -> str:
    """Run a program and return its standard output.

    With ``merge_stderr`` the error stream is included in the output, otherwise
    it is discarded. Raises OSError when the program cannot be started.
    """
    completed = subprocess.run(
        list(argv),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
        text=True,
        errors="replace",
        check=False,
    )
    return completed.stdout


class PackageVerifier:
    """Verifies files with rpm first and dpkg second.

    ``run`` executes a command and returns its output; ``which`` locates a
    program on the search path. Both default to the real system.
    """

    def __init__(
        self,
        run: Optional[CommandRunner] = None,
        which: Optional[ProgramLocator] = None,
    ) -> None:
        self._run = run if run is not None else run_command
        self._which = which if which is not None else shutil.which

    def verify_file(self, path: Union[str, PathLike]) -> VerificationResult:
        """Verify one file against the package manager that owns it."""
        path_text = str(Path(path))
        if self.has_rpm():
            result = self._verify_with_rpm(path_text)
            if result is not None:
                return result
        if self.has_dpkg():
            result = self._verify_with_dpkg(path_text)
            if result is not None:
                return result
        return VerificationResult(VerificationStatus.NOT_PACKAGED)

    def has_rpm(self) -> bool:
        return bool(self._which("rpm"))

    def has_dpkg(self) -> bool:
        return bool(self._which("dpkg"))

    def _output(self, argv: Sequence[str], merge_stderr: bool) -> Optional[str]:
        try:
            return self._run(argv, merge_stderr)
        except OSError:
            return None

    def _verify_with_rpm(self, path: str) -> Optional[VerificationResult]:
        owner = self._query_rpm_owner(path)
        if owner is None:
            return None
        output = self._output(["rpm", "-V", "--nomtime", "--nouser", "--nogroup", owner], True)
        if output is None:
            return VerificationResult(
                VerificationStatus.ERROR, owner, error="Failed to execute command"
            )
        if not output or path not in output:
            return VerificationResult(VerificationStatus.OK, owner)
        if "5" in output:
            return VerificationResult(
                VerificationStatus.MODIFIED,
                owner,
                expected_hash="rpm-metadata",
                actual_hash="file-differs",
            )
        return VerificationResult(
            VerificationStatus.MODIFIED, owner, error="File attributes differ from package"
        )

    def _verify_with_dpkg(self, path: str) -> Optional[VerificationResult]:
        owner = self._query_dpkg_owner(path)
        if owner is None:
            return None
        output = self._output(["dpkg", "--verify", owner], True)
        if output is None:
            return VerificationResult(
                VerificationStatus.ERROR, owner, error="Failed to execute command"
            )
        if output and path in output:
            return VerificationResult(
                VerificationStatus.MODIFIED,
                owner,
                expected_hash="dpkg-metadata",
                actual_hash="file-differs",
            )
        return VerificationResult(VerificationStatus.OK, owner)

    def _query_rpm_owner(self, path: str) -> Optional[str]:
        output = self._output(["rpm", "-qf", path], False)
        if not output:
            return None
        package = output.rstrip()
        if "not owned" in package:
            return None
        return package or None

    def _query_dpkg_owner(self, path: str) -> Optional[str]:
        output = self._output(["dpkg", "-S", path], False)
        if not output:
            return None
        package = "\n".join(line.split(":", 1)[0] for line in output.split("\n")).rstrip()
        return package or None