"""
fmdispatch - pattern-driven command dispatch for file managers.
"""
__version__ = "0.9.1"

from .core.config import AppConfig, load_config
from .core.dispatcher import Dispatcher

__all__ = ['AppConfig', 'Dispatcher', 'load_config', '__version__']
