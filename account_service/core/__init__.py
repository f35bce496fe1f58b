"""
Core infrastructure: settings, errors, stores and credential hashing.
"""
