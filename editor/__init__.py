"""Editing session and terminal user interface."""
