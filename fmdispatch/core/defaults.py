"""
Built-in rule tables.

Patterns are tested against the file name with backup suffixes removed.
Keep catch-all patterns at the end of a table.
"""
from .callbacks import bunzip2, gunzip, unxz, uudecode
from .rules import ArchiveRuleTable, Callback, RuleTable

TAR_GZ = r'\.(tar\.g?z|tgz)$'
TAR_BZ2 = r'\.(tar\.bz2|tbz2?)$'
TAR_XZ = r'\.(tar\.xz|txz)$'


def default_unpack_rules():
    return RuleTable([
        (TAR_GZ, 'gunzip -c %s | tar xvf -'),
        (TAR_BZ2, 'bunzip2 -c %s | tar xvf -'),
        (TAR_XZ, 'xz -dc %s | tar xvf -'),
        (r'\.tar$', ['tar', 'xvf']),
        (r'\.(zip|jar)$', ['unzip', '-o']),
        (r'\.arc$', ['arc', 'x']),
        (r'\.zoo$', ['zoo', 'x//']),
        (r'\.(lzh|lha)$', ['lha', 'x']),
        (r'\.Z$', ['uncompress']),
        (r'\.g?z$', Callback(gunzip, 'gunzip')),
        (r'\.bz2$', Callback(bunzip2, 'bunzip2')),
        (r'\.xz$', Callback(unxz, 'unxz')),
        (r'\.uue?$', Callback(uudecode, 'uudecode')),
    ])


def default_extract_rules():
    # The user appends member names before the command runs.
    return RuleTable([
        (TAR_GZ, 'gunzip -c %s | tar xvf - '),
        (TAR_BZ2, 'bunzip2 -c %s | tar xvf - '),
        (TAR_XZ, 'xz -dc %s | tar xvf - '),
        (r'\.tar$', 'tar xvf %s '),
        (r'\.(zip|jar)$', 'unzip -o %s '),
        (r'\.arc$', 'arc x %s '),
        (r'\.zoo$', 'zoo x// %s '),
        (r'\.(lzh|lha)$', 'lha x %s '),
    ])


def default_list_rules():
    return RuleTable([
        (TAR_GZ, 'gunzip -c %s | tar tvf -'),
        (TAR_BZ2, 'bunzip2 -c %s | tar tvf -'),
        (TAR_XZ, 'xz -dc %s | tar tvf -'),
        (r'\.tar$', ['tar', 'tvf']),
        (r'\.(zip|jar)$', ['unzip', '-l']),
        (r'\.arc$', ['arc', 'v']),
        (r'\.zoo$', ['zoo', 'v']),
        (r'\.(lzh|lha)$', ['lha', 'l']),
    ])


def default_view_rules():
    # Anything unmatched opens in the built-in viewer.
    return RuleTable([
        (r'\.(ps|eps)$', ['gv']),
        (r'\.pdf$', ['xdg-open']),
        (r'\.dvi$', ['xdvi']),
        (r'\.(png|jpe?g|gif|bmp|tiff?|webp)$', ['xdg-open']),
        (r'\.html?$', ['xdg-open']),
    ])


def default_print_rules():
    return RuleTable([
        (r'\.(ps|eps|pdf)$', ['lpr']),
        (r'\.dvi$', 'dvips -f %s | lpr'),
        (r'.', ['lpr']),
    ])


def default_compact_print_rules():
    return RuleTable([
        (r'\.(ps|eps)$', 'psnup -2 %s | lpr'),
        (r'\.pdf$', 'pdftops %s - | psnup -2 | lpr'),
        (r'.', 'enscript -2r -p - %s | lpr'),
    ])


def default_archive_copy_rules():
    return ArchiveRuleTable([
        (r'\.tar$', ['tar', 'rvf'], ['tar', 'cvf']),
        (TAR_GZ, None, 'tar cvf - %s | gzip -c > %s'),
        (TAR_BZ2, None, 'tar cvf - %s | bzip2 -c > %s'),
        (r'\.(zip|jar)$', ['zip', '-r'], ['zip', '-r']),
        # append-only formats; an overwrite removes the old archive first
        (r'\.arc$', ['arc', 'a'], None),
        (r'\.zoo$', ['zoo', 'a'], None),
        (r'\.(lzh|lha)$', ['lha', 'a'], None),
    ])
