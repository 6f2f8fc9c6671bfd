import binascii
import bz2
import gzip
import lzma
import os
import stat
import unittest

from _support import make_repo_tmpdir, write_file

from fmdispatch.core import callbacks


def _uuencode(name, payload, mode="644"):
    lines = [f"begin {mode} {name}".encode()]
    for start in range(0, len(payload), 45):
        lines.append(binascii.b2a_uu(payload[start:start + 45]).rstrip(b"\n"))
    lines.extend([b"`", b"end", b""])
    return b"\n".join(lines)


class DecompressCallbackTests(unittest.TestCase):
    def setUp(self):
        self.tmp = make_repo_tmpdir()
        self.addCleanup(self.tmp.cleanup)
        self.base = self.tmp.name

    def _write(self, name, opener, payload=b"hello\n"):
        path = os.path.join(self.base, name)
        with opener(path, "wb") as handle:
            handle.write(payload)
        return path

    def _read(self, name):
        with open(os.path.join(self.base, name), "rb") as handle:
            return handle.read()

    def test_gunzip_replaces_file(self):
        path = self._write("notes.txt.gz", gzip.open)
        self.assertTrue(callbacks.gunzip(path, "notes.txt.gz"))
        self.assertFalse(os.path.exists(path))
        self.assertEqual(self._read("notes.txt"), b"hello\n")

    def test_gunzip_tgz_becomes_tar(self):
        path = self._write("bundle.tgz", gzip.open, b"tar-bytes")
        callbacks.gunzip(path)
        self.assertEqual(self._read("bundle.tar"), b"tar-bytes")

    def test_gunzip_strips_backup_suffix(self):
        path = self._write("notes.gz.~1~", gzip.open)
        self.assertTrue(callbacks.gunzip(path))
        self.assertFalse(os.path.exists(path))
        self.assertEqual(self._read("notes"), b"hello\n")

    def test_bunzip2_and_unxz(self):
        callbacks.bunzip2(self._write("a.bz2", bz2.open, b"bz"))
        callbacks.unxz(self._write("b.txz", lzma.open, b"xz"))
        self.assertEqual(self._read("a"), b"bz")
        self.assertEqual(self._read("b.tar"), b"xz")

    def test_existing_output_is_not_clobbered(self):
        path = self._write("notes.txt.gz", gzip.open)
        write_file(self.base, "notes.txt", "keep")
        with self.assertRaises(FileExistsError):
            callbacks.gunzip(path)
        self.assertTrue(os.path.exists(path))
        self.assertEqual(self._read("notes.txt"), b"keep")

    def test_corrupt_input_leaves_no_partial_output(self):
        path = write_file(self.base, "broken.gz", "not gzip at all")
        with self.assertRaises(OSError):
            callbacks.gunzip(path)
        self.assertFalse(os.path.exists(os.path.join(self.base, "broken")))
        self.assertTrue(os.path.exists(path))

    def test_unrecognised_suffix(self):
        path = write_file(self.base, "plain.txt")
        with self.assertRaises(ValueError):
            callbacks.gunzip(path)


class UudecodeTests(unittest.TestCase):
    def setUp(self):
        self.tmp = make_repo_tmpdir()
        self.addCleanup(self.tmp.cleanup)
        self.base = self.tmp.name

    def _encoded(self, data):
        path = os.path.join(self.base, "payload.uue")
        with open(path, "wb") as handle:
            handle.write(data)
        return path

    def test_decodes_named_file_with_mode(self):
        payload = bytes(range(256)) * 3
        path = self._encoded(_uuencode("out.bin", payload, mode="600"))
        self.assertTrue(callbacks.uudecode(path, "payload.uue"))
        target = os.path.join(self.base, "out.bin")
        with open(target, "rb") as handle:
            self.assertEqual(handle.read(), payload)
        self.assertEqual(stat.S_IMODE(os.stat(target).st_mode), 0o600)

    def test_header_path_is_reduced_to_basename(self):
        path = self._encoded(_uuencode("../../escape.txt", b"x"))
        callbacks.uudecode(path)
        self.assertTrue(os.path.exists(os.path.join(self.base, "escape.txt")))

    def test_missing_begin_or_end(self):
        with self.assertRaises(ValueError):
            callbacks.uudecode(self._encoded(b"just text\n"))
        with self.assertRaises(ValueError):
            callbacks.uudecode(self._encoded(b"begin 644 x\n#86)C\n"))

    def test_registry_names(self):
        self.assertEqual(sorted(callbacks.CALLBACKS), ["bunzip2", "gunzip", "unxz", "uudecode"])


if __name__ == "__main__":
    unittest.main()
