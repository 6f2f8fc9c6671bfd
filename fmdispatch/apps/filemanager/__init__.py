from .core import FileEntry, FileListing
from .operations import (
    perform_copy, perform_delete, perform_extract, perform_list_archive,
    perform_print, perform_unpack, perform_view,
)

__all__ = [
    'FileEntry', 'FileListing', 'perform_copy', 'perform_delete', 'perform_extract',
    'perform_list_archive', 'perform_print', 'perform_unpack', 'perform_view',
]
