"""
Dependency closure and download URI resolution.

Both steps lean on the package index for the hard work (recursion, cycle
detection, picking versions). What we own here is turning its line-oriented
text into clean package names and download descriptors:

 - only concrete `Depends:` lines become package names,
 - the seeds themselves are always part of the result,
 - names from the exclusion list (packages the target already ships) are
   removed last, so they are dropped no matter how they were reached.
"""

import posixpath
import sys
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Set
from urllib.parse import unquote, urlparse

from .index import PackageIndex


DEPENDS_MARKER = "Depends:"

# apt-cache prints virtual packages as "<name>"; bracketed arch/build
# qualifiers can show up the same way.
NON_CONCRETE_PREFIXES = ("<", "[")

QUOTE_CHARS = "'\""


##############################################################################
# Dependency Resolver
##############################################################################

def parse_depends_line(line: str) -> Optional[str]:
    """
    Return the package name on one `apt-cache depends` line, or None.

    The recursive listing looks like:

        libvorbis-dev
          Depends: libvorbis0a
         |Depends: libogg-dev
          Depends: <libogg-dev:any>
          PreDepends: dpkg

    Only plain "Depends: <name>" lines name a concrete package we want.
    Header lines (no marker), "PreDepends:" lines, alternatives (leading "|")
    and virtual or qualified names (in "<...>" or "[...]") are discarded.
    """
    stripped = line.strip()
    if not stripped.startswith(DEPENDS_MARKER):
        return None

    name = stripped[len(DEPENDS_MARKER):].strip()
    if not name or name.startswith(NON_CONCRETE_PREFIXES):
        return None
    return name


def resolve_dependencies(
    seeds: Sequence[str],
    index: PackageIndex,
    exclude: Iterable[str] = (),
) -> Set[str]:
    """
    Compute seeds + their recursive dependencies - exclude.

    Every seed is scanned; an index failure (IndexQueryError) propagates
    to the caller unchanged. We never skip a seed and carry on with a
    partial closure.
    """
    resolved: Set[str] = set()

    for seed in seeds:
        print(f"Scanning: {seed}")
        resolved.add(seed)
        for raw_line in index.depends(seed):
            name = parse_depends_line(raw_line)
            if name:
                resolved.add(name)

    excluded = set(exclude)
    dropped = resolved & excluded
    if dropped:
        print(f"Excluding {len(dropped)} base package(s): {', '.join(sorted(dropped))}")

    return resolved - excluded


##############################################################################
# URI Resolver
##############################################################################

@dataclass(frozen=True)
class DownloadDescriptor:
    """Where to fetch one .deb from, and the file name to store it under."""
    uri: str
    file_name: str

    @property
    def package(self) -> str:
        """Package name taken from a `<name>_<version>_<arch>.deb` file name."""
        return self.file_name.split("_", 1)[0]


def file_name_from_uri(uri: str) -> str:
    """Last path segment of `uri`, percent-decoded ('1%3a2.0' -> '1:2.0')."""
    return unquote(posixpath.basename(urlparse(uri).path))


def parse_uri_line(line: str) -> Optional[DownloadDescriptor]:
    """
    Parse one `apt-get download --print-uris` line:

        'http://deb.debian.org/debian/pool/main/o/opus/libopus0_1.3.1-3_armhf.deb' libopus0_1.3.1-3_armhf.deb 183356 SHA256:...

    Only the first token matters. Returns None if it is not a usable URI.
    """
    tokens = line.split()
    if not tokens:
        return None

    uri = tokens[0].strip(QUOTE_CHARS)
    parsed = urlparse(uri)
    if not parsed.scheme or not parsed.path:
        return None

    file_name = file_name_from_uri(uri)
    if not file_name:
        return None

    return DownloadDescriptor(uri=uri, file_name=file_name)


def resolve_uris(packages: Iterable[str], index: PackageIndex) -> List[DownloadDescriptor]:
    """
    Look up download locations for all `packages` in one batched query.

    The returned order is the index's response order. Blank lines are
    ignored; lines that don't parse are reported and skipped.
    """
    names = sorted(packages)
    if not names:
        return []

    descriptors: List[DownloadDescriptor] = []
    for raw_line in index.download_uris(names):
        if not raw_line.strip():
            continue
        descriptor = parse_uri_line(raw_line)
        if descriptor is None:
            print(f"Warning: skipping unparseable URI line: {raw_line!r}", file=sys.stderr)
            continue
        descriptors.append(descriptor)

    print(f"Resolved download URIs for {len(descriptors)} of {len(names)} package(s).")
    return descriptors
