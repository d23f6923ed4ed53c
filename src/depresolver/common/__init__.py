"""Shared helpers used across registry, research and service modules."""
