"""Logging and polling helpers."""
