"""Services: sync coordination, AI assist and per-collection domain helpers."""
