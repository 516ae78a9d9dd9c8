"""Scratchbox2 sandbox integration."""
