"""Command implementations for the git-dit CLI."""
