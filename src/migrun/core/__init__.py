"""Shared primitives: errors, logging, settings, protocols, build mode."""
