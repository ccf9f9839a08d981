"""Derive build targets and dependencies from the imports of Python source trees."""

__version__ = "0.1.0"
