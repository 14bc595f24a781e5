"""Filesystem access helpers."""
