"""
Rewrite absolute symlinks in an extracted tree to relative ones.

Packages are built to be installed at /, so they ship links such as

    usr/lib/arm-linux-gnueabihf/libz.so -> /lib/arm-linux-gnueabihf/libz.so.1

Inside a sysroot that lives somewhere else, that target would resolve against
the build machine's root instead of the sysroot. Relative links keep working
wherever the tree is moved or unpacked.
"""

import os
import sys
from typing import List, Tuple


TEMP_SUFFIX = ".sysroot-relink"


def _is_within(path: str, root: str) -> bool:
    return os.path.commonpath([root, os.path.normpath(path)]) == root


def relative_link_target(link_path: str, target: str, root: str) -> str:
    """
    Relative equivalent of the absolute `target` for a link at `link_path`.

    A target that already points inside `root` is kept as the same location.
    Any other absolute target is read as a path inside the sysroot, i.e.
    "/usr/lib/x" means "<root>/usr/lib/x".
    """
    root = os.path.abspath(root)
    if _is_within(target, root):
        absolute_target = os.path.normpath(target)
    else:
        absolute_target = os.path.join(root, os.path.normpath(target).lstrip(os.sep))
    link_dir = os.path.dirname(os.path.abspath(link_path))
    return os.path.relpath(absolute_target, link_dir)


def _replace_symlink(link_path: str, new_target: str) -> None:
    """
    Point `link_path` at `new_target` with an atomic rename over the old link.

    The temporary link gets a fresh random name next to `link_path`; an
    existing entry with that name is never touched, we just pick another.
    """
    while True:
        temp_path = f"{link_path}{TEMP_SUFFIX}-{os.urandom(4).hex()}"
        try:
            os.symlink(new_target, temp_path)
        except FileExistsError:
            continue
        break
    try:
        os.replace(temp_path, link_path)
    except OSError:
        os.remove(temp_path)
        raise


def normalize_symlinks(root: str) -> List[Tuple[str, str]]:
    """
    Make every absolute symlink under `root` relative.

    Links that are already relative are left alone, so running this twice
    changes nothing the second time. A link that cannot be read or
    rewritten, or a directory that cannot be listed, is reported and
    skipped. The (path, error) pairs of those failures are returned.
    """
    failures: List[Tuple[str, str]] = []
    rewritten = 0

    def _unreadable_directory(e: OSError) -> None:
        print(f"Warning: could not scan {e.filename} for symlinks: {e}", file=sys.stderr)
        failures.append((e.filename, str(e)))

    for dirpath, dirnames, filenames in os.walk(root, onerror=_unreadable_directory):
        # os.walk does not descend into symlinked directories but still lists them
        for name in dirnames + filenames:
            link_path = os.path.join(dirpath, name)
            if not os.path.islink(link_path):
                continue
            try:
                target = os.readlink(link_path)
                if not os.path.isabs(target):
                    continue
                new_target = relative_link_target(link_path, target, root)
                print(f"Relativizing symlink {os.path.relpath(link_path, root)} -> {target}")
                _replace_symlink(link_path, new_target)
                rewritten += 1
            except OSError as e:
                print(f"Warning: could not relativize symlink {link_path}: {e}", file=sys.stderr)
                failures.append((link_path, str(e)))

    print(f"Relativized {rewritten} symlink(s), {len(failures)} failure(s).")
    return failures
