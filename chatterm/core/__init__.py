"""Core streaming, decoding, and session helpers."""
