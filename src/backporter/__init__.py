"""Cherry-pick commits onto release branches, resolving conflicts."""

__version__ = "0.1.0"
