"""Offshoot core — tree traversal, atomic state, processing and lifecycle."""
