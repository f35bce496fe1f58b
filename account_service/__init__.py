"""
Account and credential lifecycle service.
"""

__version__ = "1.0.0"
