"""Shared utilities for tripstudio."""
