"""
File-manager operations returning ActionResult instead of raising.
"""
import os
import shutil

from ...core.actions import ActionResult, ActionType
from ...core.errors import DispatchError


def _report_result(report, listing=None):
    """Map a BatchReport (or None for a cancelled batch) to an ActionResult."""
    if report is None:
        return ActionResult(ActionType.INFO, 'Cancelled.')
    if listing is not None:
        listing.refresh()
    if report.ok:
        return ActionResult(ActionType.REFRESH, report.summary())
    return ActionResult(ActionType.ERROR, report.summary())


def _guard(action, *args):
    try:
        return action(*args), None
    except DispatchError as exc:
        return None, ActionResult(ActionType.ERROR, str(exc))
    except (OSError, shutil.Error) as exc:
        return None, ActionResult(ActionType.ERROR, str(exc))


def perform_view(dispatcher, listing):
    """View the entry at the cursor."""
    entry = listing.current_entry()
    if entry is None:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    _, error = _guard(dispatcher.view, entry.full_path)
    if error is not None:
        return error
    return ActionResult(ActionType.INFO, f'Viewing {entry.name}')


def perform_print(dispatcher, listing, count=None, compact=False):
    paths = listing.selected_paths(count)
    if not paths:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    action = dispatcher.compact_print if compact else dispatcher.print_files
    report, error = _guard(action, paths)
    return error or _report_result(report)


def perform_unpack(dispatcher, listing, count=None):
    paths = listing.selected_paths(count)
    if not paths:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    report, error = _guard(dispatcher.unpack, paths)
    return error or _report_result(report, listing)


def perform_extract(dispatcher, listing):
    entry = listing.current_entry()
    if entry is None:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    _, error = _guard(dispatcher.extract_one, entry.full_path)
    if error is not None:
        return error
    listing.refresh()
    return ActionResult(ActionType.REFRESH, f'Extracted from {entry.name}')


def perform_list_archive(dispatcher, listing, buffer=None):
    """List the archive at the cursor; payload carries the buffer lines."""
    entry = listing.current_entry()
    if entry is None:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    lines, error = _guard(dispatcher.list_archive, entry.full_path, buffer)
    if error is not None:
        return error
    return ActionResult(
        ActionType.SHOW_BUFFER,
        {'title': f'Contents of {entry.name}', 'lines': lines},
    )


def perform_delete(dispatcher, listing, count=None):
    paths = listing.selected_paths(count)
    if not paths:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    report, error = _guard(dispatcher.delete, paths)
    if error is not None:
        listing.refresh()
        return error
    return _report_result(report, listing)


def perform_copy(dispatcher, listing, destination, count=None, overwrite=None):
    paths = listing.selected_paths(count)
    if not paths:
        return ActionResult(ActionType.ERROR, 'No item selected.')
    destination = str(destination or '').strip()
    if not destination:
        return ActionResult(ActionType.ERROR, 'Destination cannot be empty.')
    if not os.path.isabs(os.path.expanduser(destination)):
        destination = os.path.join(listing.path, destination)
    report, error = _guard(dispatcher.copy, paths, destination, overwrite)
    return error or _report_result(report, listing)
