"""Tests for dependency and URI resolution."""

import pytest

from debian_sysroot.errors import IndexQueryError
from debian_sysroot.resolver import (
    DownloadDescriptor,
    file_name_from_uri,
    parse_depends_line,
    parse_uri_line,
    resolve_dependencies,
    resolve_uris,
)


APT_CACHE_OUTPUT = [
    "libvorbis-dev",
    "  Depends: libvorbis0a",
    "  Depends: libvorbisenc2",
    " |Depends: libogg-dev",
    "  Depends: <libogg-dev:any>",
    "  PreDepends: dpkg",
    "libvorbis0a",
    "  Depends: libc6",
    "  Depends: libogg0",
    "",
]


class TestParseDependsLine:
    """Tests for filtering raw apt-cache lines."""

    def test_plain_depends(self):
        assert parse_depends_line("  Depends: libogg0") == "libogg0"

    def test_header_line_ignored(self):
        assert parse_depends_line("libvorbis-dev") is None

    def test_alternative_ignored(self):
        assert parse_depends_line(" |Depends: libogg-dev") is None

    def test_predepends_ignored(self):
        assert parse_depends_line("  PreDepends: dpkg") is None

    def test_virtual_ignored(self):
        assert parse_depends_line("  Depends: <libogg-dev:any>") is None

    def test_bracketed_qualifier_ignored(self):
        assert parse_depends_line("  Depends: [armhf] libfoo") is None

    def test_empty_name_ignored(self):
        assert parse_depends_line("  Depends:   ") is None


class TestResolveDependencies:
    """Tests for resolve_dependencies."""

    def test_single_seed(self, fake_index):
        """libopus-dev pulls in libopus0."""
        index = fake_index(depends={"libopus-dev": ["libopus-dev", "  Depends: libopus0"]})

        assert resolve_dependencies(["libopus-dev"], index) == {"libopus-dev", "libopus0"}

    def test_exclusion_removed(self, fake_index):
        index = fake_index(depends={"pkgA": ["  Depends: pkgB", "  Depends: libc6"]})

        resolved = resolve_dependencies(["pkgA"], index, exclude={"libc6"})

        assert resolved == {"pkgA", "pkgB"}

    def test_excluded_seed_removed(self, fake_index):
        index = fake_index(depends={"libc6": [], "pkgA": []})

        resolved = resolve_dependencies(["libc6", "pkgA"], index, exclude=["libc6"])

        assert resolved == {"pkgA"}

    def test_shared_dependency_deduplicated(self, fake_index):
        index = fake_index(depends={
            "libvorbis0a": ["  Depends: libogg0"],
            "libvorbisenc2": ["  Depends: libogg0", "  Depends: libvorbis0a"],
        })

        resolved = resolve_dependencies(["libvorbis0a", "libvorbisenc2"], index)

        assert resolved == {"libvorbis0a", "libvorbisenc2", "libogg0"}

    def test_filtered_forms_not_included(self, fake_index):
        index = fake_index(depends={"libvorbis-dev": APT_CACHE_OUTPUT})

        resolved = resolve_dependencies(["libvorbis-dev"], index, exclude={"libc6"})

        assert resolved == {"libvorbis-dev", "libvorbis0a", "libvorbisenc2", "libogg0"}
        assert "libogg-dev" not in resolved
        assert "dpkg" not in resolved

    def test_idempotent(self, fake_index):
        index = fake_index(depends={"libvorbis-dev": APT_CACHE_OUTPUT})

        first = resolve_dependencies(["libvorbis-dev"], index, exclude={"libc6"})
        second = resolve_dependencies(["libvorbis-dev"], index, exclude={"libc6"})

        assert first == second

    def test_every_seed_scanned(self, fake_index):
        index = fake_index()

        resolve_dependencies(["a", "b", "c"], index)

        assert index.depends_calls == ["a", "b", "c"]

    def test_index_failure_is_fatal(self, fake_index):
        index = fake_index()

        def _fail(package):
            if package == "broken":
                raise IndexQueryError("apt-cache exited with status 100")
            return []

        index.depends = _fail

        with pytest.raises(IndexQueryError):
            resolve_dependencies(["ok", "broken", "later"], index)


class TestParseUriLine:
    """Tests for apt-get --print-uris parsing."""

    def test_quoted_uri(self):
        line = ("'http://deb.debian.org/debian/pool/main/o/opus/libopus0_1.3.1-3_armhf.deb' "
                "libopus0_1.3.1-3_armhf.deb 183356 SHA256:abc")

        descriptor = parse_uri_line(line)

        assert descriptor.uri == "http://deb.debian.org/debian/pool/main/o/opus/libopus0_1.3.1-3_armhf.deb"
        assert descriptor.file_name == "libopus0_1.3.1-3_armhf.deb"
        assert descriptor.package == "libopus0"

    def test_percent_decoded_file_name(self):
        descriptor = parse_uri_line('"http://example.com/pool/libfoo_1%3a2.0-1_armhf.deb" x 1 y')

        assert descriptor.file_name == "libfoo_1:2.0-1_armhf.deb"

    def test_file_name_from_uri(self):
        assert file_name_from_uri("file:///srv/repo/a%2Bb_1_all.deb") == "a+b_1_all.deb"

    def test_blank_line(self):
        assert parse_uri_line("   ") is None

    def test_not_a_uri(self):
        assert parse_uri_line("Reading package lists... Done") is None


class TestResolveUris:
    """Tests for resolve_uris."""

    def test_single_batched_query(self, fake_index):
        index = fake_index(uri_lines=[])

        resolve_uris({"b", "a", "c"}, index)

        assert index.uri_calls == [["a", "b", "c"]]

    def test_empty_set_skips_query(self, fake_index):
        index = fake_index()

        assert resolve_uris(set(), index) == []
        assert index.uri_calls == []

    def test_response_order_and_skipped_lines(self, fake_index, capsys):
        index = fake_index(uri_lines=[
            "'http://h/pool/zlib1g_1_armhf.deb' zlib1g_1_armhf.deb 1 SHA256:x",
            "",
            "garbage",
            "'http://h/pool/libopus0_1_armhf.deb' libopus0_1_armhf.deb 1 SHA256:y",
        ])

        descriptors = resolve_uris({"libopus0", "zlib1g"}, index)

        assert descriptors == [
            DownloadDescriptor("http://h/pool/zlib1g_1_armhf.deb", "zlib1g_1_armhf.deb"),
            DownloadDescriptor("http://h/pool/libopus0_1_armhf.deb", "libopus0_1_armhf.deb"),
        ]
        assert "garbage" in capsys.readouterr().err

    def test_index_failure_is_fatal(self, fake_index):
        index = fake_index()

        def _fail(packages):
            raise IndexQueryError("apt-get exited with status 100")

        index.download_uris = _fail

        with pytest.raises(IndexQueryError):
            resolve_uris({"a"}, index)
