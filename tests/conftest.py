"""Pytest configuration and fixtures."""

import io
import lzma
import tarfile
from pathlib import Path

import pytest
import zstandard


class FakeIndex:
    """In-memory stand-in for the APT package index."""

    def __init__(self, depends=None, uri_lines=None):
        self.depends_output = depends or {}
        self.uri_lines = uri_lines or []
        self.depends_calls = []
        self.uri_calls = []

    def depends(self, package):
        self.depends_calls.append(package)
        return list(self.depends_output.get(package, []))

    def download_uris(self, packages):
        self.uri_calls.append(list(packages))
        return list(self.uri_lines)


def _ar_member(name, data):
    header = (
        name.ljust(16)
        + "0".ljust(12)
        + "0".ljust(6)
        + "0".ljust(6)
        + "100644".ljust(8)
        + str(len(data)).ljust(10)
    ).encode("ascii") + b"`\n"
    if len(data) % 2:
        data += b"\n"
    return header + data


def _tar_bytes(files, symlinks):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo("./" + name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
        for name, target in symlinks.items():
            info = tarfile.TarInfo("./" + name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buf.getvalue()


def build_deb(path, scheme="xz", files=None, symlinks=None):
    """
    Write a minimal .deb to `path`.

    scheme is "xz", "zst", or None for an archive without any data payload.
    """
    files = files or {}
    symlinks = symlinks or {}
    control = lzma.compress(_tar_bytes({"control": b"Package: test\n"}, {}))

    members = [
        _ar_member("debian-binary", b"2.0\n"),
        _ar_member("control.tar.xz", control),
    ]
    if scheme is not None:
        payload = _tar_bytes(files, symlinks)
        if scheme == "xz":
            members.append(_ar_member("data.tar.xz", lzma.compress(payload)))
        elif scheme == "zst":
            members.append(_ar_member("data.tar.zst", zstandard.ZstdCompressor().compress(payload)))
        else:
            members.append(_ar_member(f"data.tar.{scheme}", payload))

    Path(path).write_bytes(b"!<arch>\n" + b"".join(members))
    return Path(path)


@pytest.fixture
def fake_index():
    """Factory for FakeIndex instances."""
    return FakeIndex


@pytest.fixture
def make_deb():
    """Return the build_deb helper."""
    return build_deb


@pytest.fixture
def workdir(tmp_path):
    """Empty working directory for extraction."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def deb_repo(tmp_path):
    """Directory standing in for a local file: APT repository."""
    path = tmp_path / "repo"
    path.mkdir()
    return path
