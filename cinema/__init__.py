"""Storyboard authoring and generation core."""

__version__ = "0.3.0"
