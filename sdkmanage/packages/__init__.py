"""Wrappers around the package manager and the registration service."""
