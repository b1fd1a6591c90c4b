"""
Test support utilities for migrun tests.

Helpers that don't fit as pytest fixtures but are useful across multiple
test files.
"""
