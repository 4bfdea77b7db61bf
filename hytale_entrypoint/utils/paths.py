"""
Filesystem helpers shared by the services.
"""

import os
import shutil
import tempfile


def ensure_dir(path: str) -> str:
    """Create *path* (and parents) if it doesn't exist.  Returns the path."""
    os.makedirs(path, exist_ok=True)
    return path


def is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def atomic_copy(src: str, dest: str) -> str:
    """
    Copy *src* to *dest* through a temporary file in the destination folder
    followed by ``os.replace``, so a reader sees either the old file or the
    complete new one.
    """
    dest_dir = ensure_dir(os.path.dirname(os.path.abspath(dest)))
    fd, tmp = tempfile.mkstemp(prefix=f".{os.path.basename(dest)}.", suffix=".tmp", dir=dest_dir)
    os.close(fd)
    try:
        shutil.copyfile(src, tmp)
        os.replace(tmp, dest)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    return dest


def remove_path(path: str) -> bool:
    """Delete a file or directory tree.  Returns False if nothing was there."""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
        return True
    if os.path.lexists(path):
        os.remove(path)
        return True
    return False
