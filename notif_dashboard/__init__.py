"""Local dashboard for GitHub notifications of a single repository."""
