"""
Exceptions raised while building a sysroot.

Everything fatal derives from SysrootError, which is itself a RuntimeError so
callers that only know about RuntimeError still see these failures.
Non-fatal conditions (unparseable index lines, a single symlink that cannot be
rewritten, stale files that are already gone) are printed as warnings and
never raised.
"""

from typing import Optional


class SysrootError(RuntimeError):
    """Base class for every fatal error in a sysroot build."""


class IndexQueryError(SysrootError):
    """
    The package index (apt-cache / apt-get) could not be queried.

    `command` is the argv that was run and `stderr` whatever it printed,
    so the operator can re-run it by hand.
    """

    def __init__(self, message: str, command: Optional[list] = None, stderr: str = ""):
        super().__init__(message)
        self.command = command or []
        self.stderr = stderr


class DownloadError(SysrootError):
    """A .deb could not be fetched or written to the working directory."""

    def __init__(self, message: str, uri: str = ""):
        super().__init__(message)
        self.uri = uri


class UnknownPackageFormatError(SysrootError):
    """
    A downloaded archive did not contain a payload we know how to unpack.

    We refuse to continue in that case: skipping the package would leave a
    sysroot that looks complete but is missing libraries.
    """

    def __init__(self, message: str, package: str = "", uri: str = ""):
        super().__init__(message)
        self.package = package
        self.uri = uri


class ExtractionError(SysrootError):
    """A package's files could not be written into the tree (clash, full disk, permissions)."""

    def __init__(self, message: str, package: str = "", uri: str = ""):
        super().__init__(message)
        self.package = package
        self.uri = uri


class StageError(SysrootError):
    """A fatal error tagged with the build stage it happened in."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
