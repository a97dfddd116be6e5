"""Interactive viewer for state graphs reported by a model checker."""

__version__ = "0.1.0"
