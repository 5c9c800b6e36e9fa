"""
Eminent Western funds-transfer service.
"""

__version__ = "1.0.0"
