"""Envelope, Result channel and shared helpers."""
