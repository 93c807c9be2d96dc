"""
slotbooker - calendar availability and booking engine.
"""

__version__ = "0.1.0"
