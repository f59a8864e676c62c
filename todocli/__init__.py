"""Command-line client for Todoist: a local task store, an API client and the commands."""

__version__ = "0.1.0"