"""Utilities: errors, logging, paths, ports and environment."""
