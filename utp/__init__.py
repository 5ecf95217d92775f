"""Universal Text Pipeline: multi-source text detection, merging and read-along highlighting."""

__version__ = "1.0.0"
