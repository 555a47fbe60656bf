"""
Roster reconciliation application package.
"""
