"""Infrastructure layer: persistence, metadata, filesystem, watching, observability."""
