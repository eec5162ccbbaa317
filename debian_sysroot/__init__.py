"""Build cross-compilation sysroot bundles from Debian package archives."""

from .builder import SysrootBuilder
from .errors import (
    DownloadError,
    ExtractionError,
    IndexQueryError,
    StageError,
    SysrootError,
    UnknownPackageFormatError,
)
from .index import AptPackageIndex, PackageIndex
from .resolver import DownloadDescriptor, resolve_dependencies, resolve_uris
from .extractor import fetch_and_extract
from .symlinks import normalize_symlinks
from .targets import SysrootTarget, TARGETS, get_target

__version__ = "0.1.0"

__all__ = [
    "AptPackageIndex",
    "DownloadDescriptor",
    "DownloadError",
    "ExtractionError",
    "IndexQueryError",
    "PackageIndex",
    "StageError",
    "SysrootBuilder",
    "SysrootError",
    "SysrootTarget",
    "TARGETS",
    "UnknownPackageFormatError",
    "fetch_and_extract",
    "get_target",
    "normalize_symlinks",
    "resolve_dependencies",
    "resolve_uris",
]
