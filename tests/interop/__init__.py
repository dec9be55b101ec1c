"""Interop tests that run node processes."""
