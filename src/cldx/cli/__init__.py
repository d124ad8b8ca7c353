"""
Command-line interface for the CLDX treasury.
"""
