"""Searching a directory tree for files and packing matches into a tarball."""

from __future__ import annotations

import os
import stat
import tarfile
import time
from collections.abc import Callable, Iterable, Iterator
from itertools import islice

MAX_FILES = 1000

_DATE_LENGTH = 10
_DASH_POSITIONS = (4, 7)


def is_valid_date(date: str) -> bool:
    """Return True if ``date`` has the shape YYYY-MM-DD (digits and two dashes)."""
    if len(date) != _DATE_LENGTH:
        return False
    for position, char in enumerate(date):
        if position in _DASH_POSITIONS:
            if char != "-":
                return False
        elif not ("0" <= char <= "9"):
            return False
    return True


def date_to_timestamp(date: str) -> int:
    """Return the local-time epoch seconds of midnight starting ``date``."""
    if not is_valid_date(date):
        raise ValueError(f"invalid date {date!r}, expected YYYY-MM-DD")
    year, month, day = (int(part) for part in date.split("-"))
    return int(time.mktime((year, month, day, 0, 0, 0, 0, 0, 0)))


def _walk_files(
    root: str, accept: Callable[[str, os.stat_result], bool]
) -> Iterator[str]:
    """Yield paths of regular files below ``root`` that ``accept`` approves.

    The walk is depth first, follows symbolic links and silently skips
    anything that cannot be opened or stat'ed.
    """
    visited: set[tuple[int, int]] = set()

    def walk(directory: str) -> Iterator[str]:
        try:
            dir_stat = os.stat(directory)
        except OSError:
            return
        key = (dir_stat.st_dev, dir_stat.st_ino)
        if key in visited:
            return
        visited.add(key)
        try:
            with os.scandir(directory) as entries:
                names = [entry.name for entry in entries]
        except OSError:
            return
        for name in names:
            full_path = f"{directory}/{name}"
            try:
                info = os.stat(full_path)
            except OSError:
                continue
            if stat.S_ISREG(info.st_mode):
                if accept(name, info):
                    yield full_path
            elif stat.S_ISDIR(info.st_mode):
                yield from walk(full_path)

    yield from walk(root)


def find_file(root: str, filename: str) -> str | None:
    """Return the path of the first regular file named ``filename`` under ``root``."""
    matches = _walk_files(root, lambda name, _info: name == filename)
    return next(matches, None)


def files_by_size(
    root: str, size1: int, size2: int, limit: int = MAX_FILES
) -> list[str]:
    """Return up to ``limit`` files whose size lies in ``[size1, size2]``."""
    matches = _walk_files(root, lambda _name, info: size1 <= info.st_size <= size2)
    return list(islice(matches, limit))


def files_by_date(
    root: str, date1: str, date2: str, limit: int = MAX_FILES
) -> list[str]:
    """Return up to ``limit`` files modified between midnight of ``date1`` and of ``date2``."""
    start = date_to_timestamp(date1)
    end = date_to_timestamp(date2)
    matches = _walk_files(
        root, lambda _name, info: start <= int(info.st_mtime) <= end
    )
    return list(islice(matches, limit))


def _extension(name: str) -> str | None:
    if "." not in name:
        return None
    return name.rsplit(".", 1)[1]


def files_by_extension(
    root: str, extensions: Iterable[str], limit: int = MAX_FILES
) -> list[str]:
    """Return up to ``limit`` files whose last extension is one of ``extensions``."""
    wanted = set(extensions)
    matches = _walk_files(root, lambda name, _info: _extension(name) in wanted)
    return list(islice(matches, limit))


def build_tar(paths: Iterable[str], tar_path: str) -> str:
    """Write the given files into a gzip-compressed tarball and return its path.

    Leading slashes are stripped from member names, as tar does by default.
    """
    with tarfile.open(tar_path, "w:gz") as archive:
        for path in paths:
            arcname = path.lstrip("/") or path
            archive.add(path, arcname=arcname, recursive=False)
    return tar_path