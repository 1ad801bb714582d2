"""Bundled course content."""
