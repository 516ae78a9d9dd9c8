"""
Cross-compilation support for sdk-manage.

Architecture settings, root file system probing and host view mirroring.
"""
