"""
Core functionality for sdk-manage.

This package contains the foundational modules that other components depend on:
configuration, errors, command execution, file system helpers, downloads and
the rollback transaction.
"""
