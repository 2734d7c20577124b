"""Offshoot CLI — Typer-based command-line interface.

Provides the ``offshoot`` command for inspecting persisted attachment
records and upgrading legacy ones.  All output uses Rich.
"""
