"""Utility modules for planpilot."""
