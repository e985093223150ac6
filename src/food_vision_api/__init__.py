"""Hybrid food recognition API."""
