"""Dataset catalog API."""
