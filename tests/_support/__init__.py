"""Shared test helpers (fake data sources, recording pools)."""
