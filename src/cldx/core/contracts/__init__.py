"""
In-memory token contracts.
"""
