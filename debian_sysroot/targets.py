"""
Compiled-in packaging targets.

A target is the seed package list to build a sysroot from, plus the packages
the target device is known to already have (libc and the compiler runtime).
Those are left out of the bundle even when something depends on them.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

from .bundle import DEFAULT_BUNDLE_NAME


DEFAULT_PACKAGES = [
    "libopus0",
    "libopus-dev",
    "libvorbis0a",
    "libvorbisenc2",
    "libvorbis-dev",
]

DEFAULT_EXCLUDE = frozenset([
    "libc6",
    "libgcc-s1",
    "libcrypt1",
    "gcc-13-base",
])


@dataclass(frozen=True)
class SysrootTarget:
    """One sysroot flavour: what to pull in, what to leave out, what to call it."""
    name: str
    architecture: str
    packages: List[str] = field(default_factory=lambda: list(DEFAULT_PACKAGES))
    exclude: FrozenSet[str] = DEFAULT_EXCLUDE
    bundle_name: str = DEFAULT_BUNDLE_NAME


TARGETS: Dict[str, SysrootTarget] = {
    "armhf": SysrootTarget(name="armhf", architecture="armhf"),
    "arm64": SysrootTarget(name="arm64", architecture="arm64"),
}

DEFAULT_TARGET = "armhf"


def get_target(name: str) -> SysrootTarget:
    try:
        return TARGETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown sysroot target {name!r}; known targets: {', '.join(sorted(TARGETS))}"
        )
