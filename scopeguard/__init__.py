"""ScopeGuard - bulletin vs. approved submittal conflict detection."""

__version__ = "0.1.0"
