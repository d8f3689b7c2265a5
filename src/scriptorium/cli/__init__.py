"""Scriptorium command-line interface."""
