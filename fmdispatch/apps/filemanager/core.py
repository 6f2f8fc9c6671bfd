"""
Core data structures for the file list the dispatcher operates on.
"""
import os
import re


class FileEntry:
    """A file or directory in a listing; depth is 0 at the listing root."""
    __slots__ = ('name', 'is_dir', 'full_path', 'depth', 'marked')

    def __init__(self, name, is_dir, full_path, depth=0):
        self.name = name
        self.is_dir = is_dir
        self.full_path = full_path
        self.depth = depth
        self.marked = False

    def __repr__(self):
        return f'FileEntry({self.full_path!r}, is_dir={self.is_dir})'


class FileListing:
    """Directory listing with marks and a cursor.

    With ``recursive=True`` every subdirectory's entries follow the
    directory itself, so the listing reads top-down like ``ls -R``.
    """

    def __init__(self, path, show_hidden=False, recursive=False):
        self.path = os.path.realpath(path)
        self.show_hidden = bool(show_hidden)
        self.recursive = bool(recursive)
        self.entries = []
        self.cursor = 0
        self.error_message = None
        self.refresh()

    def _scan(self, path, depth, out):
        try:
            raw_entries = sorted(os.listdir(path), key=str.lower)
        except OSError as exc:
            if depth == 0:
                self.error_message = str(exc)
            return

        dirs = []
        files = []
        for name in raw_entries:
            if not self.show_hidden and name.startswith('.'):
                continue
            full_path = os.path.join(path, name)
            if os.path.isdir(full_path) and not os.path.islink(full_path):
                dirs.append(FileEntry(name, True, full_path, depth))
            else:
                files.append(FileEntry(name, False, full_path, depth))

        for entry in dirs:
            out.append(entry)
            if self.recursive:
                self._scan(entry.full_path, depth + 1, out)
        out.extend(files)

    def refresh(self):
        """Re-read the directory, keeping marks on entries that still exist."""
        marked = {entry.full_path for entry in self.entries if entry.marked}
        current = self.current_entry()
        self.error_message = None
        entries = []
        self._scan(self.path, 0, entries)
        for entry in entries:
            entry.marked = entry.full_path in marked
        self.entries = entries
        self.cursor = 0
        if current is not None:
            self.move_to(current.full_path)

    def current_entry(self):
        if 0 <= self.cursor < len(self.entries):
            return self.entries[self.cursor]
        return None

    def move_to(self, path):
        for index, entry in enumerate(self.entries):
            if entry.full_path == path or entry.name == path:
                self.cursor = index
                return True
        return False

    # --- Marks ---

    def _entry(self, key):
        if isinstance(key, int):
            return self.entries[key]
        for entry in self.entries:
            if entry.full_path == key or entry.name == key:
                return entry
        raise KeyError(key)

    def mark(self, key, flag=True):
        self._entry(key).marked = flag

    def unmark(self, key):
        self.mark(key, False)

    def toggle_mark(self, key):
        entry = self._entry(key)
        entry.marked = not entry.marked

    def mark_matching(self, pattern):
        """Mark every entry whose name matches pattern; return the count."""
        regex = re.compile(pattern)
        count = 0
        for entry in self.entries:
            if regex.search(entry.name):
                entry.marked = True
                count += 1
        return count

    def clear_marks(self):
        for entry in self.entries:
            entry.marked = False

    def marked_entries(self):
        return [entry for entry in self.entries if entry.marked]

    def selected_entries(self, count=None):
        """Return entries to operate on, in listing order.

        Marked entries win. Without marks, ``count`` picks ``count`` entries
        starting at the cursor, or for a negative count the ``-count``
        entries just above it; ``None`` means the entry at the cursor.
        """
        marked = self.marked_entries()
        if marked:
            return marked
        if not self.entries:
            return []
        if count is None:
            count = 1
        if count >= 0:
            return self.entries[self.cursor:self.cursor + count]
        start = max(0, self.cursor + count)
        return self.entries[start:self.cursor]

    def selected_paths(self, count=None):
        return [entry.full_path for entry in self.selected_entries(count)]
