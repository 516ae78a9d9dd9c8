"""
IDE Integration Module

This module advertises installed targets to Qt Creator.
"""
