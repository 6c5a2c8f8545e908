"""PySide6 editor for composing report images."""

from .app import AppContext, ComposerWindow, run

__all__ = ["AppContext", "ComposerWindow", "run"]
