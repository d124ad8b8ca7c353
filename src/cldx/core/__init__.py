"""
Core ledger primitives: tokens, access control, configuration and logging.
"""
