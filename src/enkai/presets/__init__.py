"""Bundled task presets."""
