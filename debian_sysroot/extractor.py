"""
Download .deb files and unpack their data payloads into the sysroot tree.

A .deb is an `ar` container with three members:

    debian-binary       format marker ("2.0\n")
    control.tar.<ext>   maintainer scripts and metadata (ignored here)
    data.tar.<ext>      the files that would be installed under /

We only support the two payload compressions current Debian/Ubuntu archives
use, zstd and xz. Anything else is a fatal error: a package we cannot unpack
would leave the sysroot silently incomplete.

Each package is unpacked in its own scratch directory. Only the data payload's
file tree lands in the working directory, where it overlays whatever earlier
packages already extracted (the last package to write a path wins).
"""

import lzma
import os
import shutil
import tarfile
import tempfile
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests
import zstandard
from debian.arfile import ArError, ArFile

from .errors import DownloadError, ExtractionError, UnknownPackageFormatError
from .resolver import DownloadDescriptor


DOWNLOAD_TIMEOUT = 60  # seconds, per request
CHUNK_SIZE = 64 * 1024

# Checked in this order; the first payload present wins.
PAYLOADS: List[Tuple[str, str]] = [
    ("data.tar.zst", "zst"),
    ("data.tar.xz", "xz"),
]

# Member names of a .deb. None of them may be left in the working directory.
INTERMEDIATE_FILES = [
    "control.tar.gz",
    "control.tar.xz",
    "control.tar.zst",
    "data.tar.xz",
    "data.tar.zst",
    "debian-binary",
]


##############################################################################
# Download
##############################################################################

def download_package_file(
    descriptor: DownloadDescriptor,
    workdir: str,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Make sure `descriptor.file_name` exists in `workdir` and return its path.

    An existing file is reused as is, so an interrupted run can be resumed.
    http(s) URIs are fetched with requests; file: URIs (local APT
    repositories) are copied. Any failure raises DownloadError. There is no
    retry: the operator re-runs the build, which skips what is already there.
    """
    file_path = os.path.join(workdir, descriptor.file_name)

    if os.path.isfile(file_path):
        print(f"Exists: {descriptor.file_name} is already downloaded.")
        return file_path

    print(f"Downloading: {descriptor.file_name} from {descriptor.uri}")

    parsed = urlparse(descriptor.uri)
    if parsed.scheme == "file":
        source = url2pathname(parsed.path)
        try:
            shutil.copyfile(source, file_path)
        except OSError as e:
            raise DownloadError(
                f"Error copying {descriptor.file_name} from {descriptor.uri}: {e}",
                uri=descriptor.uri,
            )
        return file_path

    getter = session if session is not None else requests
    part_path = file_path + ".part"
    try:
        response = getter.get(descriptor.uri, stream=True, timeout=DOWNLOAD_TIMEOUT)
        try:
            response.raise_for_status()
            with open(part_path, "wb") as outf:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        outf.write(chunk)
        finally:
            response.close()
        os.replace(part_path, file_path)
    except (requests.exceptions.RequestException, OSError) as e:
        if os.path.exists(part_path):
            os.remove(part_path)
        raise DownloadError(
            f"Error fetching {descriptor.file_name} from {descriptor.uri}: {e}",
            uri=descriptor.uri,
        )

    return file_path


##############################################################################
# Unpacking
##############################################################################

def unpack_outer_container(deb_path: str, staging_dir: str) -> List[str]:
    """Write every `ar` member of `deb_path` into `staging_dir`; return their names."""
    try:
        archive = ArFile(deb_path)
    except (ArError, OSError, ValueError) as e:
        raise UnknownPackageFormatError(
            f"{os.path.basename(deb_path)} is not a valid .deb (ar) archive: {e}"
        )

    names: List[str] = []
    for member in archive.getmembers():
        # ar member names are flat; never let one point outside staging_dir
        name = os.path.basename(member.name)
        if not name:
            continue
        try:
            with open(os.path.join(staging_dir, name), "wb") as outf:
                shutil.copyfileobj(member, outf)
        finally:
            member.close()
        names.append(name)

    return names


def detect_payload(staging_dir: str) -> Optional[Tuple[str, str]]:
    """Return (path, scheme) of the data payload in `staging_dir`, or None."""
    for file_name, scheme in PAYLOADS:
        path = os.path.join(staging_dir, file_name)
        if os.path.isfile(path):
            return path, scheme
    return None


def extract_payload(payload_path: str, scheme: str, dest: str) -> None:
    """
    Unpack a data.tar.<scheme> payload over `dest`.

    Permissions and symlinks are kept as stored, including absolute link
    targets (normalize_symlinks fixes those later). The "tar" extraction
    filter still strips leading slashes and refuses members that would land
    outside `dest`.
    """
    try:
        if scheme == "zst":
            with open(payload_path, "rb") as fh:
                reader = zstandard.ZstdDecompressor().stream_reader(fh, read_across_frames=True)
                with tarfile.open(fileobj=reader, mode="r|") as tar:
                    tar.extractall(dest, filter="tar")
        elif scheme == "xz":
            with tarfile.open(payload_path, mode="r:xz") as tar:
                tar.extractall(dest, filter="tar")
        else:
            raise ValueError(f"Unsupported payload compression: {scheme!r}")
    except (tarfile.TarError, zstandard.ZstdError, lzma.LZMAError, EOFError) as e:
        raise UnknownPackageFormatError(
            f"Cannot unpack {os.path.basename(payload_path)} ({scheme}): {e}"
        )


def remove_intermediate_files(workdir: str) -> List[str]:
    """Delete any .deb member files from `workdir`; return the names removed."""
    removed = []
    for file_name in INTERMEDIATE_FILES:
        try:
            os.remove(os.path.join(workdir, file_name))
        except FileNotFoundError:
            continue
        removed.append(file_name)
    return removed


def extract_package(deb_path: str, workdir: str, descriptor: DownloadDescriptor) -> str:
    """
    Unpack one downloaded .deb into `workdir`. Returns the payload scheme used.

    Raises UnknownPackageFormatError naming the package and its URI when
    no supported payload is found, and ExtractionError when its files
    cannot be written (a file landing on a directory, a full disk).
    """
    with tempfile.TemporaryDirectory(prefix="debian-sysroot-") as staging_dir:
        try:
            unpack_outer_container(deb_path, staging_dir)
            payload = detect_payload(staging_dir)
            if payload is None:
                raise UnknownPackageFormatError(
                    "unknown file type: no data.tar.zst or data.tar.xz in the archive"
                )
            payload_path, scheme = payload
            print(f"Extracting: {descriptor.file_name} ({scheme})")
            extract_payload(payload_path, scheme, workdir)
        except UnknownPackageFormatError as e:
            raise UnknownPackageFormatError(
                f"Package '{descriptor.package}' ({descriptor.uri}): {e}",
                package=descriptor.package,
                uri=descriptor.uri,
            )
        except OSError as e:
            raise ExtractionError(
                f"Package '{descriptor.package}' ({descriptor.uri}): cannot write its files: {e}",
                package=descriptor.package,
                uri=descriptor.uri,
            )
    return scheme


def fetch_and_extract(
    descriptors: Sequence[DownloadDescriptor],
    workdir: str,
    session: Optional[requests.Session] = None,
) -> None:
    """
    Download and unpack every descriptor into `workdir`, one at a time, in order.

    The first fatal error stops the whole run. Stray .deb member files
    are removed from `workdir` after each package whether or not it
    succeeded.
    """
    total = len(descriptors)
    for position, descriptor in enumerate(descriptors, 1):
        print(f"[{position}/{total}] {descriptor.package}")
        try:
            deb_path = download_package_file(descriptor, workdir, session)
            extract_package(deb_path, workdir, descriptor)
        finally:
            remove_intermediate_files(workdir)
