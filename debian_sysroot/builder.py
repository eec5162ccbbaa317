"""
Sysroot build orchestration.

Runs the stages strictly in order:

    1. remove stale .deb files from the working directory
    2. resolve the dependency closure of the target's seed packages
    3. resolve download URIs for the closure
    4. download and extract every package
    5. rewrite absolute symlinks to relative ones
    6. remove the downloaded .deb files again
    7. tar the working directory into the sysroot bundle

Any fatal error stops the build and is re-raised as a StageError naming the
stage. The underlying exception, which names the package or URI, is kept as
its cause.
"""

import os
from typing import List, Optional, Set, Tuple

import requests

from .bundle import create_bundle, remove_package_files
from .errors import StageError, SysrootError
from .extractor import fetch_and_extract
from .index import AptPackageIndex, PackageIndex
from .resolver import DownloadDescriptor, resolve_dependencies, resolve_uris
from .symlinks import normalize_symlinks
from .targets import SysrootTarget


class SysrootBuilder:
    """Build one sysroot bundle for a target in a working directory."""

    def __init__(
        self,
        target: SysrootTarget,
        workdir: str = ".",
        index: Optional[PackageIndex] = None,
        session: Optional[requests.Session] = None,
        keep_downloads: bool = False,
        dry_run: bool = False,
    ):
        """
        Args:
            target: Seed packages, exclusions and bundle name.
            workdir: Directory the tree is extracted into and bundled from.
            index: Package index to query. Defaults to the host's APT,
                resolving for the target's architecture.
            session: Optional requests session for downloads.
            keep_downloads: Do not delete .deb files left by an earlier run,
                so their downloads are skipped.
            dry_run: Stop after URI resolution and only print the plan.
        """
        self.target = target
        self.workdir = os.path.abspath(workdir)
        if index is None:
            index = AptPackageIndex(["-o", f"APT::Architecture={target.architecture}"])
        self.index = index
        self.session = session
        self.keep_downloads = keep_downloads
        self.dry_run = dry_run

        self.resolved: Set[str] = set()
        self.descriptors: List[DownloadDescriptor] = []
        self.symlink_failures: List[Tuple[str, str]] = []

    def build(self) -> Optional[str]:
        """
        Run every stage. Returns the bundle path, or None for a dry run.

        Raises:
            StageError: a stage failed; nothing after it was run.
        """
        print(f"Building {self.target.name} sysroot ({self.target.architecture}) in {self.workdir}")
        os.makedirs(self.workdir, exist_ok=True)

        if self.keep_downloads:
            print("Step 1: Keeping previously downloaded packages")
        else:
            print("Step 1: Removing stale package files")
            remove_package_files(self.workdir)

        print("Step 2: Resolving dependencies")
        self.resolved = self._run_stage(
            "dependency resolution",
            resolve_dependencies,
            self.target.packages,
            self.index,
            self.target.exclude,
        )
        print(f"  Resolved {len(self.resolved)} package(s)")

        print("Step 3: Resolving download URIs")
        self.descriptors = self._run_stage("URI resolution", resolve_uris, self.resolved, self.index)

        if self.dry_run:
            self._print_plan()
            return None

        print("Step 4: Downloading and extracting packages")
        self._run_stage(
            "download and extraction",
            fetch_and_extract,
            self.descriptors,
            self.workdir,
            self.session,
        )

        print("Step 5: Relativizing symlinks")
        self.symlink_failures = normalize_symlinks(self.workdir)

        print("Step 6: Removing package files")
        remove_package_files(self.workdir)

        print("Step 7: Creating bundle")
        bundle_path = self._run_stage("bundling", create_bundle, self.workdir, self.target.bundle_name)
        print(f"  Bundle created: {bundle_path}")

        return bundle_path

    def _run_stage(self, stage: str, func, *args):
        try:
            return func(*args)
        except (SysrootError, OSError) as e:
            raise StageError(stage, e) from e

    def _print_plan(self) -> None:
        print(f"Dry run: {len(self.resolved)} package(s) would be installed into the sysroot:")
        for name in sorted(self.resolved):
            print(f"  {name}")
        print(f"Download plan ({len(self.descriptors)} file(s)):")
        for descriptor in self.descriptors:
            print(f"  {descriptor.uri}")
