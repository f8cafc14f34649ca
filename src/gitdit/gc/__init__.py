"""Reference garbage collection for issues."""
