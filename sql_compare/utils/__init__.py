"""Utility helpers - structured logging."""
