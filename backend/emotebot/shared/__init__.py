"""Shared state layer: data models, caches, usage store and persistence."""
