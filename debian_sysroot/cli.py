"""
Command-line entry points.

`debian-sysroot` builds any known target; `build-armhf-sysroot` and
`build-arm64-sysroot` take no arguments at all and build their target in the
current directory. All of them exit 0 on success and 1 on any fatal error.
"""

import argparse
import sys
from typing import List, Optional

from .builder import SysrootBuilder
from .errors import StageError, SysrootError
from .targets import DEFAULT_TARGET, TARGETS, get_target


def build_parser(default_target: str = DEFAULT_TARGET) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Resolve, download and unpack Debian packages into a "
            "cross-compilation sysroot bundle (sysroot.tar)."
        )
    )
    parser.add_argument(
        "--target",
        choices=sorted(TARGETS),
        default=default_target,
        help=f"Sysroot target to build (default: {default_target}).",
    )
    parser.add_argument(
        "--workdir",
        default=".",
        help="Directory to extract into and bundle from (default: current directory).",
    )
    parser.add_argument(
        "--keep-downloads",
        action="store_true",
        help="Reuse .deb files left by a previous run instead of deleting them first.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only resolve packages and download URIs, then print the plan.",
    )
    return parser


def main(argv: Optional[List[str]] = None, default_target: str = DEFAULT_TARGET) -> int:
    args = build_parser(default_target).parse_args(argv)

    builder = SysrootBuilder(
        get_target(args.target),
        workdir=args.workdir,
        keep_downloads=args.keep_downloads,
        dry_run=args.dry_run,
    )

    try:
        bundle_path = builder.build()
    except StageError as e:
        print(f"\nCRITICAL ERROR during {e.stage}: {e.cause}", file=sys.stderr)
        return 1
    except SysrootError as e:
        print(f"\nCRITICAL ERROR: {e}", file=sys.stderr)
        return 1

    if builder.symlink_failures:
        print(
            f"Warning: {len(builder.symlink_failures)} symlink(s) could not be relativized; "
            f"see messages above.",
            file=sys.stderr,
        )
    if bundle_path:
        print(f"\nSysroot bundle created successfully: {bundle_path}")
    return 0


def main_armhf() -> None:
    sys.exit(main([], default_target="armhf"))


def main_arm64() -> None:
    sys.exit(main([], default_target="arm64"))


if __name__ == "__main__":
    sys.exit(main())
