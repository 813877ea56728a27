"""Apparatus and storage interaction protocols."""
