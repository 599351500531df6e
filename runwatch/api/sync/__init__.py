"""Manual and scheduled sync trigger resources."""
