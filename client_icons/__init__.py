# client_icons/__init__.py

"""
Rule-driven icon auto-assignment for multi-company client records.
"""

__version__ = "1.0.0"
