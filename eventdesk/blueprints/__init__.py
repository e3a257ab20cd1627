"""
EventDesk
Blueprint registry.
"""
