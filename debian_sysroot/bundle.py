"""Working-directory housekeeping and the final sysroot archive."""

import glob
import os
import tarfile
from typing import Optional


DEFAULT_BUNDLE_NAME = "sysroot.tar"

# Downloaded archives (and half-written downloads) must never end up in the bundle.
PACKAGE_FILE_PATTERNS = ["*.deb", "*.deb.part"]


def remove_package_files(workdir: str) -> int:
    """
    Delete downloaded .deb files from the top of `workdir`.

    Nothing to delete is the normal case on a fresh run, and a file that
    vanishes or cannot be removed is not worth failing the build over, so
    errors are ignored. Returns how many files were removed.
    """
    removed = 0
    for pattern in PACKAGE_FILE_PATTERNS:
        for path in glob.glob(os.path.join(glob.escape(workdir), pattern)):
            try:
                os.remove(path)
            except OSError:
                continue
            removed += 1
    return removed


def create_bundle(workdir: str, bundle_name: Optional[str] = None) -> str:
    """
    Archive the whole of `workdir` into an uncompressed tar at its root.

    Members are stored relative to the tree (`./usr/lib/...`), with symlinks
    kept as links. The bundle itself is left out of the archive. The tar is
    written under a temporary name and renamed into place when complete.
    """
    bundle_name = bundle_name or DEFAULT_BUNDLE_NAME
    bundle_path = os.path.join(workdir, bundle_name)
    part_path = bundle_path + ".part"
    skipped = {os.path.join(".", bundle_name), os.path.join(".", bundle_name + ".part")}

    def _skip_bundle(tarinfo: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
        if tarinfo.name in skipped:
            return None
        return tarinfo

    with tarfile.open(part_path, "w") as tar:
        tar.add(workdir, arcname=".", filter=_skip_bundle)
    os.replace(part_path, bundle_path)

    return bundle_path
