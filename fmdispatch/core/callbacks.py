"""
In-process actions usable as ``Callback`` command specs.

Each callback receives ``(absolute_path, relative_path)`` and returns True on
success. Filesystem problems propagate as ``OSError``; malformed input
raises ``ValueError``.
"""
import binascii
import bz2
import gzip
import logging
import lzma
import os
import shutil

from .rules import strip_version_suffix

LOGGER = logging.getLogger(__name__)

COPY_CHUNK = 1024 * 1024


def _decompressed_name(path, suffixes):
    # notes.gz.~1~ decompresses to notes, like notes.gz
    base = strip_version_suffix(path)
    lower = base.lower()
    for suffix, replacement in suffixes:
        if lower.endswith(suffix):
            return base[: -len(suffix)] + replacement
    raise ValueError(f'Unrecognised compressed file name: {os.path.basename(path)}')


def _decompress_in_place(path, opener, suffixes):
    target = _decompressed_name(path, suffixes)
    if os.path.lexists(target):
        raise FileExistsError(17, 'File exists', target)
    try:
        with opener(path, 'rb') as src, open(target, 'wb') as dst:
            shutil.copyfileobj(src, dst, COPY_CHUNK)
    except (OSError, EOFError, lzma.LZMAError):
        # leave no half-written output behind
        if os.path.exists(target):
            os.remove(target)
        raise
    shutil.copystat(path, target)
    os.remove(path)
    LOGGER.debug('Decompressed %s -> %s', path, target)
    return True


def gunzip(path, _relative=None):
    """Replace a gzip-compressed file with its decompressed contents."""
    return _decompress_in_place(
        path, gzip.open, (('.tgz', '.tar'), ('.gz', ''), ('.z', ''))
    )


def bunzip2(path, _relative=None):
    """Replace a bzip2-compressed file with its decompressed contents."""
    return _decompress_in_place(
        path, bz2.open, (('.tbz2', '.tar'), ('.tbz', '.tar'), ('.bz2', ''))
    )


def unxz(path, _relative=None):
    """Replace an xz-compressed file with its decompressed contents."""
    return _decompress_in_place(path, lzma.open, (('.txz', '.tar'), ('.xz', '')))


def uudecode(path, _relative=None):
    """Decode a uuencoded file next to it, named after its ``begin`` line."""
    directory = os.path.dirname(path)
    with open(path, 'rb') as handle:
        lines = iter(handle.read().splitlines())

    for line in lines:
        if line.startswith(b'begin '):
            header = line.split(None, 2)
            if len(header) != 3:
                raise ValueError(f'Malformed uuencode header in {path}')
            mode = int(header[1], 8)
            name = os.path.basename(header[2].decode('utf-8', 'replace').strip())
            break
    else:
        raise ValueError(f'No uuencode begin line in {path}')

    chunks = []
    for line in lines:
        if line.strip() == b'end':
            break
        if not line.strip() or line.strip() == b'`':
            continue
        try:
            chunks.append(binascii.a2b_uu(line))
        except binascii.Error:
            # some encoders pad lines; decode only the announced length
            count = (((line[0] - 32) & 63) * 4 + 5) // 3
            chunks.append(binascii.a2b_uu(line[:count]))
    else:
        raise ValueError(f'No uuencode end line in {path}')

    target = os.path.join(directory, name)
    with open(target, 'wb') as out:
        out.write(b''.join(chunks))
    os.chmod(target, mode & 0o777)
    LOGGER.debug('Decoded %s -> %s', path, target)
    return True


CALLBACKS = {
    'gunzip': gunzip,
    'bunzip2': bunzip2,
    'unxz': unxz,
    'uudecode': uudecode,
}
