import os
import unittest
from types import SimpleNamespace
from unittest import mock

from _support import ScriptedPrompter, make_repo_tmpdir, write_file

from fmdispatch.core.archive import (
    TargetKind,
    copy_into_archive,
    relative_sources,
    resolve_copy_target,
)
from fmdispatch.core.defaults import default_archive_copy_rules
from fmdispatch.core.dispatcher import Dispatcher
from fmdispatch.core.errors import ArchiveFormatUnsupported, UserDeclined
from fmdispatch.core.executor import CommandExecutor
from fmdispatch.core.output import SHELL_OUTPUT_BUFFER, OperationLog, OutputBuffers
from fmdispatch.core.rules import ArchiveRuleTable, Argv, FormatTemplate


class ResolveCopyTargetTests(unittest.TestCase):
    def setUp(self):
        self.tmp = make_repo_tmpdir()
        self.addCleanup(self.tmp.cleanup)
        self.base = self.tmp.name
        self.table = default_archive_copy_rules()

    def test_existing_directory_is_ordinary(self):
        folder = os.path.join(self.base, 'looks.tar')
        os.mkdir(folder)
        prompter = ScriptedPrompter()
        target = resolve_copy_target(folder, self.table, prompter)
        self.assertIs(target.kind, TargetKind.ORDINARY_DIRECTORY)
        self.assertFalse(target.is_archive)
        self.assertEqual(prompter.asked, [])

    def test_unmatched_name_is_not_a_destination(self):
        target = resolve_copy_target(os.path.join(self.base, 'plain.txt'), self.table, ScriptedPrompter())
        self.assertIs(target.kind, TargetKind.NOT_A_DESTINATION)

    def test_rules_match_the_destination_name_only(self):
        table = ArchiveRuleTable([(r'\.tar', ['tar', 'rvf'], ['tar', 'cvf'])])
        destination = os.path.join(self.base, 'x.tar.d', 'notes.txt')
        prompter = ScriptedPrompter()
        target = resolve_copy_target(destination, table, prompter)
        self.assertIs(target.kind, TargetKind.NOT_A_DESTINATION)
        self.assertEqual(prompter.asked, [])

    def test_missing_archive_is_created_after_confirmation(self):
        prompter = ScriptedPrompter(['Yes'])
        target = resolve_copy_target(os.path.join(self.base, 'out.tar'), self.table, prompter)
        self.assertIs(target.kind, TargetKind.NEW_ARCHIVE)
        self.assertEqual(target.command, Argv(('tar', 'cvf')))
        self.assertFalse(target.remove_first)
        self.assertEqual(len(prompter.asked), 1)
        self.assertIn('Create archive out.tar?', prompter.asked[0][1])

    def test_create_only_rule_never_offers_append(self):
        prompter = ScriptedPrompter(['Yes'])
        target = resolve_copy_target(os.path.join(self.base, 'out.tar.gz'), self.table, prompter)
        self.assertIs(target.kind, TargetKind.NEW_ARCHIVE)
        self.assertIsInstance(target.command, FormatTemplate)
        self.assertFalse(any('Append' in message for _, message, _ in prompter.asked))

    def test_existing_create_only_archive_asks_to_overwrite(self):
        path = write_file(self.base, 'out.tgz')
        prompter = ScriptedPrompter(['Yes'])
        target = resolve_copy_target(path, self.table, prompter)
        self.assertIs(target.kind, TargetKind.NEW_ARCHIVE)
        self.assertTrue(target.remove_first)
        self.assertIn('Overwrite archive out.tgz?', prompter.asked[0][1])

    def test_existing_archive_append_accepted(self):
        path = write_file(self.base, 'out.tar')
        prompter = ScriptedPrompter(['Yes'])
        target = resolve_copy_target(path, self.table, prompter)
        self.assertIs(target.kind, TargetKind.APPEND_ARCHIVE)
        self.assertEqual(target.command, Argv(('tar', 'rvf')))
        self.assertEqual(len(prompter.asked), 1)

    def test_existing_archive_append_declined_then_overwrite(self):
        path = write_file(self.base, 'out.tar')
        prompter = ScriptedPrompter(['No', 'Yes'])
        target = resolve_copy_target(path, self.table, prompter)
        self.assertIs(target.kind, TargetKind.NEW_ARCHIVE)
        self.assertEqual(target.command, Argv(('tar', 'cvf')))
        self.assertTrue(target.remove_first)

    def test_declining_everything_leaves_archive(self):
        path = write_file(self.base, 'out.tar')
        with self.assertRaises(UserDeclined):
            resolve_copy_target(path, self.table, ScriptedPrompter(['No', 'No']))
        self.assertTrue(os.path.exists(path))

    def test_append_only_format_rebuilds_with_append_command(self):
        path = write_file(self.base, 'old.zoo')
        target = resolve_copy_target(path, self.table, ScriptedPrompter(['No', 'Yes']))
        self.assertIs(target.kind, TargetKind.NEW_ARCHIVE)
        self.assertEqual(target.command, Argv(('zoo', 'a')))
        self.assertTrue(target.remove_first)

    def test_append_only_format_cannot_create(self):
        with self.assertRaises(ArchiveFormatUnsupported) as ctx:
            resolve_copy_target(os.path.join(self.base, 'new.arc'), self.table, ScriptedPrompter())
        self.assertIn("Can't create this archive type", str(ctx.exception))


class RelativeSourcesTests(unittest.TestCase):
    def test_common_parent(self):
        base, relative = relative_sources(['/data/a.txt', '/data/sub/b.txt'])
        self.assertEqual(base, '/data')
        self.assertEqual(relative, ['a.txt', os.path.join('sub', 'b.txt')])


class CopyIntoArchiveTests(unittest.TestCase):
    def setUp(self):
        self.tmp = make_repo_tmpdir()
        self.addCleanup(self.tmp.cleanup)
        self.base = self.tmp.name
        self.a = write_file(self.base, 'a.txt')
        self.b = write_file(self.base, 'b.txt')

    def test_remove_first_deletes_old_archive_before_running(self):
        archive = write_file(self.base, 'old.zoo', 'stale')
        target = resolve_copy_target(archive, default_archive_copy_rules(), ScriptedPrompter(['No', 'Yes']))
        executor = CommandExecutor(OperationLog(), OutputBuffers())
        seen = []

        def fake_run(command, **kwargs):
            seen.append(os.path.exists(archive))
            return SimpleNamespace(returncode=0, stdout='')

        with mock.patch('fmdispatch.core.executor.subprocess.run', side_effect=fake_run) as run:
            result = copy_into_archive(target, [self.a, self.b], executor)
        self.assertTrue(result.ok)
        self.assertEqual(seen, [False])
        args, kwargs = run.call_args
        self.assertEqual(args[0], ('zoo', 'a', os.path.abspath(archive), 'a.txt', 'b.txt'))
        self.assertEqual(kwargs['cwd'], os.path.abspath(self.base))

    def test_dispatcher_copy_into_new_tar_runs_one_command(self):
        out = os.path.join(self.base, 'out.tar')
        prompter = ScriptedPrompter(['Yes'])
        dispatcher = Dispatcher(prompter=prompter, log=OperationLog())
        with mock.patch('fmdispatch.core.executor.subprocess.run') as run:
            run.return_value = SimpleNamespace(returncode=0, stdout='a.txt\nb.txt\n')
            report = dispatcher.copy([self.a, self.b], out)

        run.assert_called_once()
        args, kwargs = run.call_args
        self.assertEqual(args[0], ('tar', 'cvf', os.path.abspath(out), 'a.txt', 'b.txt'))
        self.assertEqual(kwargs['cwd'], os.path.abspath(self.base))
        self.assertEqual(report.total, 1)
        self.assertEqual(report.succeeded, 1)
        self.assertTrue(report.ok)
        self.assertEqual(dispatcher.buffers.lines(SHELL_OUTPUT_BUFFER), ['a.txt', 'b.txt'])

    def test_dispatcher_archive_failure_is_logged(self):
        out = os.path.join(self.base, 'out.tar')
        log = OperationLog()
        dispatcher = Dispatcher(prompter=ScriptedPrompter(['Yes']), log=log)
        with mock.patch('fmdispatch.core.executor.subprocess.run') as run:
            run.return_value = SimpleNamespace(returncode=2, stdout='tar: error\n')
            report = dispatcher.copy([self.a], out)
        self.assertFalse(report.ok)
        self.assertEqual(report.failures[0][1], 'exit status 2')
        self.assertTrue(any('Copy failed (exit status 2' in line for line in log.entries))
        self.assertEqual(log.entries[-1], '1 of 1 failed')

    def test_dispatcher_tar_gz_template_gets_sources_and_target(self):
        out = os.path.join(self.base, 'out.tar.gz')
        dispatcher = Dispatcher(prompter=ScriptedPrompter(['Yes']), log=OperationLog())
        with mock.patch('fmdispatch.core.executor.subprocess.run') as run:
            run.return_value = SimpleNamespace(returncode=0, stdout='')
            dispatcher.copy([self.a, self.b], out)
        args, kwargs = run.call_args
        self.assertEqual(args[0], f'tar cvf - a.txt b.txt | gzip -c > {os.path.abspath(out)}')
        self.assertTrue(kwargs['shell'])


if __name__ == '__main__':
    unittest.main()
