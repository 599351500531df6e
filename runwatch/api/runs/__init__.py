"""Read-only workflow-run resources."""
