"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import SessionFactory, PromptProvider
from .session import SessionHandle, ParamikoSessionFactory, load_private_key
from .utils import load_ssh_config, list_source_files

__all__ = [
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "SessionFactory",
    "PromptProvider",
    "SessionHandle",
    "ParamikoSessionFactory",
    "load_private_key",
    "load_ssh_config",
    "list_source_files",
]
