"""
dbcsmap.storage - compressed and atomic file storage

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import os
import gzip
import logging
import tempfile
from pathlib import Path
from contextlib import contextmanager

from .base import FileFormatError


@contextmanager
def atomic_open(path, mode='wb'):
    """
    Open a temporary file next to `path` for writing; rename it to `path` on success.
    On failure the temporary file is removed and `path` is left untouched.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tempname = tempfile.mkstemp(
        dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp'
    )
    try:
        with os.fdopen(fd, mode) as stream:
            yield stream
            stream.flush()
            os.fsync(stream.fileno())
        os.replace(tempname, path)
    except BaseException:
        logging.debug('Removing incomplete file `%s`', tempname)
        try:
            os.unlink(tempname)
        except FileNotFoundError:
            pass
        raise


def write_compressed(path, data):
    """Write gzip-compressed data to file atomically."""
    with atomic_open(path, 'wb') as stream:
        # fixed mtime and no file name in header keep output reproducible
        with gzip.GzipFile(filename='', mode='wb', fileobj=stream, mtime=0) as gzstream:
            gzstream.write(data)


def read_compressed(path):
    """Read and decompress gzip-compressed file."""
    try:
        with gzip.open(path, 'rb') as gzstream:
            return gzstream.read()
    except (gzip.BadGzipFile, EOFError) as exc:
        raise FileFormatError(f'Not a gzip file: `{path}`: {exc}') from exc
