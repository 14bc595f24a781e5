"""Background workers."""

from musicindex.application.workers.extraction_pool import ExtractionPool

__all__ = ["ExtractionPool"]
