"""
Clipboard helper used to hand literal commands to the user.
"""
from __future__ import annotations

import logging

import pyperclip

LOGGER = logging.getLogger(__name__)


def copy_text(text: str) -> bool:
    """Put text on the system clipboard; return False when none is available."""
    try:
        pyperclip.copy(text or "")
    except pyperclip.PyperclipException as exc:
        LOGGER.debug("System clipboard unavailable: %s", exc)
        return False
    return True
