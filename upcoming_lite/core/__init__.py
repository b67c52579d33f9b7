"""Shared timezone and clock utilities."""
