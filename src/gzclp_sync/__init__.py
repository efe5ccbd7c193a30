"""
gzclp-sync: GZCLP progression tracking on top of Hevy routines.
"""

__version__ = "0.3.0"
