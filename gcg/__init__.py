"""Co-change correlation graphs over git history."""

__version__ = "0.1.0"
