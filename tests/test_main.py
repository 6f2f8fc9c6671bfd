import io
import os
import sys
import unittest
from unittest import mock

import pyperclip

from _support import make_repo_tmpdir, write_file

from fmdispatch import __main__ as cli


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = make_repo_tmpdir()
        self.addCleanup(self.tmp.cleanup)
        self.base = self.tmp.name
        self.config_path = os.path.join(self.base, "config.toml")

    def run_cli(self, *argv):
        out = io.StringIO()
        with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            code = cli.run(["--config", self.config_path, *argv], stdout=out)
        return code, out.getvalue(), err.getvalue()


class WhichAndConfigTests(CliTestCase):
    def test_which_prints_literal_command(self):
        code, out, _ = self.run_cli("which", "list", "/srv/a.tar")
        self.assertEqual(code, 0)
        self.assertEqual(out, "tar tvf a.tar\n")

    def test_which_unknown_type_fails(self):
        code, _, err = self.run_cli("which", "list", "/srv/plain.txt")
        self.assertEqual(code, 1)
        self.assertIn("Don't know how to list plain.txt", err)

    def test_which_clipboard(self):
        with mock.patch("fmdispatch.core.clipboard.pyperclip.copy") as copy:
            code, _, _ = self.run_cli("which", "print", "/srv/a.dvi", "--clipboard")
        self.assertEqual(code, 0)
        copy.assert_called_once_with("dvips -f a.dvi | lpr")

    def test_which_clipboard_unavailable_still_succeeds(self):
        with mock.patch(
            "fmdispatch.core.clipboard.pyperclip.copy",
            side_effect=pyperclip.PyperclipException("no backend"),
        ):
            code, out, err = self.run_cli("which", "print", "/srv/a.dvi", "--clipboard")
        self.assertEqual(code, 0)
        self.assertEqual(out, "dvips -f a.dvi | lpr\n")
        self.assertIn("no system clipboard available", err)

    def test_config_shows_overrides(self):
        code, out, _ = self.run_cli("--recursive-delete", "always", "config")
        self.assertEqual(code, 0)
        self.assertIn('recursive_delete = "always"', out)
        self.assertIn('recursive_copy = "top"', out)

    def test_config_write(self):
        code, out, _ = self.run_cli("--recursive-copy", "each", "config", "--write")
        self.assertEqual(code, 0)
        with open(self.config_path, encoding="utf-8") as handle:
            self.assertIn('recursive_copy = "each"', handle.read())
        self.assertIn("# written to", out)

    def test_config_write_keeps_user_rules(self):
        write_file(
            self.base,
            "config.toml",
            "[[rules.print]]\n"
            'pattern = "\\\\.md$"\n'
            'argv = ["mdprint"]\n',
        )
        code, _, _ = self.run_cli("--recursive-copy", "each", "config", "--write")
        self.assertEqual(code, 0)
        code, out, _ = self.run_cli("which", "print", "/srv/doc.md")
        self.assertEqual(code, 0)
        self.assertEqual(out, "mdprint doc.md\n")


class FileCommandTests(CliTestCase):
    def test_delete_with_yes(self):
        tree = os.path.join(self.base, "tree")
        write_file(tree, "a/b.txt")
        code, out, _ = self.run_cli("-y", "--recursive-delete", "always", "delete", tree)
        self.assertEqual(code, 0)
        self.assertFalse(os.path.exists(tree))
        self.assertIn("1 of 1 done", out)

    def test_delete_cancelled_on_console(self):
        path = write_file(self.base, "keep.txt")
        with mock.patch("sys.stdin", io.StringIO("c\n")):
            code, out, _ = self.run_cli("delete", path)
        self.assertEqual(code, 1)
        self.assertTrue(os.path.exists(path))
        self.assertIn("No deletions performed", out)

    def test_copy_into_directory(self):
        source = write_file(self.base, "a.txt", "A")
        dest = os.path.join(self.base, "dest")
        os.mkdir(dest)
        code, _, _ = self.run_cli("-q", "copy", source, dest)
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(os.path.join(dest, "a.txt")))

    def test_copy_conflict_reports_error(self):
        a = write_file(self.base, "a.txt")
        b = write_file(self.base, "b.txt")
        code, _, err = self.run_cli("-y", "copy", a, b, os.path.join(self.base, "single.txt"))
        self.assertEqual(code, 1)
        self.assertIn("needs a directory or archive target", err)

    def test_list_uses_configured_rule_and_display(self):
        write_file(
            self.base,
            "config.toml",
            "[[rules.list]]\n"
            'pattern = "\\\\.lst$"\n'
            f'argv = ["{sys.executable}", "-c", "print(\'member\')"]\n',
        )
        archive = write_file(self.base, "x.lst")
        code, out, _ = self.run_cli("-q", "list", archive)
        self.assertEqual(code, 0)
        self.assertIn("--- *Archive Contents* ---\nmember\n", out)

    def test_main_cli_interrupt(self):
        with mock.patch.object(cli, "run", side_effect=KeyboardInterrupt):
            self.assertEqual(cli.main_cli(), 130)


if __name__ == "__main__":
    unittest.main()
