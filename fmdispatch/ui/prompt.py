"""
Confirmation prompts.
"""
import logging
import sys

LOGGER = logging.getLogger(__name__)


def _wrap_dialog_message(message, inner_w):
    """Word-wrap a dialog message into a list of lines."""
    lines = []
    for paragraph in str(message).split('\n'):
        words = paragraph.split()
        if not words:
            lines.append('')
            continue
        line = ''
        for word in words:
            needs_space = 1 if line else 0
            if len(line) + len(word) + needs_space <= inner_w:
                line = f'{line} {word}' if line else word
            else:
                lines.append(line)
                line = word
        lines.append(line)
    return lines or ['']


class Prompter:
    """Asks the user questions; subclasses decide how they are shown.

    ``ask`` returns the index of the chosen button, or -1 when the prompt
    was dismissed.
    """

    def ask(self, title, message, buttons):
        raise NotImplementedError

    def confirm(self, title, message):
        return self.ask(title, message, ['Yes', 'No']) == 0

    def edit_command(self, title, command):
        """Return the command the user wants to run, or None to cancel."""
        return command


class AssumeYesPrompter(Prompter):
    """Non-interactive prompter that picks the first button every time."""

    def ask(self, title, message, buttons):
        LOGGER.debug('Auto-answering %r with %r', title, buttons[0])
        return 0


class ConsolePrompter(Prompter):
    """Line-oriented prompter for plain terminals."""

    def __init__(self, stdin=None, stdout=None, width=60):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.width = width

    def _readline(self, prompt):
        self.stdout.write(prompt)
        self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip('\n')

    def _render(self, title, message):
        self.stdout.write(f'\n== {title} ==\n')
        for line in _wrap_dialog_message(message, self.width - 4):
            self.stdout.write(f'  {line}\n')

    def ask(self, title, message, buttons):
        self._render(title, message)
        labels = ' / '.join(f'[{label[0]}]{label[1:]}' for label in buttons)
        while True:
            answer = self._readline(f'{labels}? ')
            if answer is None:
                return -1
            answer = answer.strip().lower()
            if not answer:
                continue
            for index, label in enumerate(buttons):
                if label.lower() == answer or label[0].lower() == answer:
                    return index
            if answer.isdigit() and 1 <= int(answer) <= len(buttons):
                return int(answer) - 1

    def edit_command(self, title, command):
        self._render(title, f'Command: {command}\nPress Enter to run it unchanged.')
        answer = self._readline('> ')
        if answer is None:
            return None
        return answer.strip() or command
