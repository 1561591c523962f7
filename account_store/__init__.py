"""
Account Store

A small persistence layer for a fixed family of bank account kinds, kept in
one obfuscated flat file and reloaded into account objects on every
operation.
"""

__version__ = "1.0.0"
