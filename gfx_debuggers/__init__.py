"""
Graphics debugger injection for an already running process.

The selection dialog (``picker``) is left out of the eager imports so that
headless hosts never pull in a GUI toolkit.
"""

from . import cmdline, config, errors, injector, locators, platform_utils, quoting, relaunch, selection, shim_filter
from .injector import pre_launch

__all__ = [
    "cmdline",
    "config",
    "errors",
    "injector",
    "locators",
    "platform_utils",
    "pre_launch",
    "quoting",
    "relaunch",
    "selection",
    "shim_filter",
]
