"""
DocVault - Resilient document and conversation store with adaptive chunking.
"""
__version__ = "0.1.0"
