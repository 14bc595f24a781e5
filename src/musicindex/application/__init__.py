"""Application layer: builder, synchronizer, watcher and read model."""
