"""Field operations dashboard core: records, sync, SLA rules and AI assist."""

__version__ = "0.1.0"
