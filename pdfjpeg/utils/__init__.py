"""Shared logging and concurrency helpers."""
