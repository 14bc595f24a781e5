"""musicindex - local music library indexer and synchronizer."""

__version__ = "0.4.0"
