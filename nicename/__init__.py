"""
WordPress / BuddyPress nicename rename tool.
"""
__version__ = "0.1.0"
