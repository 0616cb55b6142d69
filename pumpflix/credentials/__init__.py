"""Encrypted integration credentials."""
