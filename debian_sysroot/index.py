"""
Package index collaborator.

The resolver never talks to APT directly. It asks a PackageIndex for two
things:

 - depends(name): the raw, line-oriented recursive dependency listing for one
   package (the format printed by `apt-cache depends --recurse`),
 - download_uris(names): one raw line per package, `<uri> <file> <size> <hash>`,
   as printed by `apt-get download --print-uris`.

AptPackageIndex implements that by shelling out. Any other backend (a test
double, python-apt bindings, a remote service) only has to return the same
shape of text.
"""

import subprocess
from typing import List, Optional, Protocol, Sequence

from .errors import IndexQueryError


APT_CACHE_DEPENDS = [
    "apt-cache", "depends",
    "--recurse",
    "--no-recommends",
    "--no-suggests",
    "--no-conflicts",
    "--no-breaks",
    "--no-replaces",
    "--no-enhances",
]

APT_GET_PRINT_URIS = ["apt-get", "download", "--print-uris"]


class PackageIndex(Protocol):
    def depends(self, package: str) -> List[str]:
        ...

    def download_uris(self, packages: Sequence[str]) -> List[str]:
        ...


class AptPackageIndex:
    """Query the host's APT configuration via apt-cache and apt-get."""

    def __init__(self, apt_options: Optional[List[str]] = None):
        """
        apt_options are passed through to both tools, e.g.
        ["-o", "APT::Architecture=armhf"] when the host's APT lists were
        prepared for a foreign architecture.
        """
        self.apt_options = list(apt_options or [])

    def depends(self, package: str) -> List[str]:
        cmd = APT_CACHE_DEPENDS[:1] + self.apt_options + APT_CACHE_DEPENDS[1:] + [package]
        return self._run(cmd, what=f"dependency scan of '{package}'")

    def download_uris(self, packages: Sequence[str]) -> List[str]:
        if not packages:
            return []
        cmd = APT_GET_PRINT_URIS[:1] + self.apt_options + APT_GET_PRINT_URIS[1:] + list(packages)
        return self._run(cmd, what=f"download URI lookup for {len(packages)} package(s)")

    def _run(self, cmd: List[str], what: str) -> List[str]:
        """
        Run one index query and return its stdout split into lines.

        A non-zero exit or a missing executable is fatal: we never
        continue with a partial answer, because a partial dependency
        scan produces a sysroot with silently missing libraries.
        """
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise IndexQueryError(
                f"Index query failed ({what}): '{cmd[0]}' is not installed or not on PATH: {e}",
                command=cmd,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise IndexQueryError(
                f"Index query failed ({what}): '{' '.join(cmd)}' exited with "
                f"status {e.returncode}: {stderr}",
                command=cmd,
                stderr=stderr,
            )

        return result.stdout.splitlines()
