"""
Entry point for fmdispatch.
"""
import argparse
import logging
import os
import sys
from dataclasses import replace

from . import __version__
from .core.clipboard import copy_text
from .core.config import load_config, save_config, serialize_config
from .core.dispatcher import Dispatcher
from .core.errors import DispatchError
from .core.output import OperationLog
from .core.recursive import OverwritePolicy, RecursivePolicy
from .ui.prompt import AssumeYesPrompter, ConsolePrompter

if os.environ.get('FMDISPATCH_DEBUG'):
    logging.basicConfig(
        level=logging.DEBUG,
        format='[%(levelname)s] %(name)s: %(message)s'
    )

POLICY_CHOICES = [policy.value for policy in RecursivePolicy]
OVERWRITE_CHOICES = [policy.value for policy in OverwritePolicy]


def build_parser():
    parser = argparse.ArgumentParser(
        prog='fmdispatch',
        description='Run viewers, printers and archivers chosen by file name.',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', help='Path to config.toml')
    parser.add_argument('-y', '--yes', action='store_true', help='Answer yes to every prompt')
    parser.add_argument('--recursive-delete', choices=POLICY_CHOICES)
    parser.add_argument('--recursive-copy', choices=POLICY_CHOICES)
    parser.add_argument('-q', '--quiet', action='store_true', help='Do not echo status messages')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('view', help='Open a file with its viewer').add_argument('file')
    sub.add_parser('print', help='Print files').add_argument('files', nargs='+')
    sub.add_parser('compact-print', help='Print files two-up').add_argument('files', nargs='+')
    sub.add_parser('unpack', help='Unpack archives or compressed files').add_argument('files', nargs='+')
    sub.add_parser('extract', help='Extract from one archive').add_argument('file')

    list_parser = sub.add_parser('list', help='List archive contents')
    list_parser.add_argument('file')
    list_parser.add_argument('--buffer', help='Output buffer name')

    sub.add_parser('delete', help='Delete files and directories').add_argument('paths', nargs='+')

    copy_parser = sub.add_parser('copy', help='Copy into a directory, file or archive')
    copy_parser.add_argument('paths', nargs='+')
    copy_parser.add_argument('destination')
    copy_parser.add_argument('--overwrite', choices=OVERWRITE_CHOICES)

    which_parser = sub.add_parser('which', help='Show the command an operation would run')
    which_parser.add_argument(
        'operation',
        choices=['view', 'print', 'compact_print', 'unpack', 'extract', 'list'],
    )
    which_parser.add_argument('file')
    which_parser.add_argument('--clipboard', action='store_true', help='Also copy the command to the clipboard')

    config_parser = sub.add_parser('config', help='Show the effective configuration')
    config_parser.add_argument('--write', action='store_true', help='Save it to the config path')
    return parser


def _make_dispatcher(args, stdout):
    config = load_config(args.config)
    overrides = {}
    if args.recursive_delete:
        overrides['recursive_delete'] = RecursivePolicy.parse(args.recursive_delete)
    if args.recursive_copy:
        overrides['recursive_copy'] = RecursivePolicy.parse(args.recursive_copy)
    if overrides:
        config = replace(config, **overrides)

    echo = None if args.quiet else (lambda text: print(text, file=stdout))
    prompter = AssumeYesPrompter() if args.yes else ConsolePrompter(stdout=stdout)

    def display(name, lines):
        print(f'--- {name} ---', file=stdout)
        for line in lines:
            print(line, file=stdout)

    log = OperationLog(config.log_file or None, echo=echo)
    return Dispatcher(config, prompter, log=log, display=display)


def _exit_code(report):
    if report is None:
        return 1
    return 0 if report.ok else 1


def run(argv=None, stdout=None):
    """Run one fmdispatch command and return process exit code."""
    stdout = stdout or sys.stdout
    args = build_parser().parse_args(argv)
    dispatcher = _make_dispatcher(args, stdout)

    try:
        if args.command == 'view':
            dispatcher.view(args.file)
        elif args.command == 'print':
            return _exit_code(dispatcher.print_files(args.files))
        elif args.command == 'compact-print':
            return _exit_code(dispatcher.compact_print(args.files))
        elif args.command == 'unpack':
            return _exit_code(dispatcher.unpack(args.files))
        elif args.command == 'extract':
            dispatcher.extract_one(args.file)
        elif args.command == 'list':
            dispatcher.list_archive(args.file, args.buffer)
        elif args.command == 'delete':
            return _exit_code(dispatcher.delete(args.paths))
        elif args.command == 'copy':
            return _exit_code(dispatcher.copy(args.paths, args.destination, args.overwrite))
        elif args.command == 'which':
            command = dispatcher.describe(args.operation, args.file)
            print(command, file=stdout)
            if args.clipboard and not copy_text(command):
                print('fmdispatch: no system clipboard available', file=sys.stderr)
        elif args.command == 'config':
            print(serialize_config(dispatcher.config), end='', file=stdout)
            if args.write:
                path = save_config(dispatcher.config, args.config)
                print(f'# written to {path}', file=stdout)
    except DispatchError as exc:
        print(f'fmdispatch: {exc}', file=sys.stderr)
        return 1
    except OSError as exc:
        print(f'fmdispatch: {exc}', file=sys.stderr)
        return 1
    return 0


def main_cli():
    """Console script entrypoint."""
    try:
        return run()
    except KeyboardInterrupt:
        return 130


if __name__ == '__main__':
    raise SystemExit(main_cli())
