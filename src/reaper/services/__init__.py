"""Services that wrap the repositories with connection handling."""
