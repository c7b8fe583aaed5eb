"""
CLI package for the Query Service client

Provides a command-line interface for running queries and inspecting jobs.
"""

from .main import main, cli

__all__ = ["main", "cli"]
