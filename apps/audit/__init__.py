"""
Append-only audit log of privileged actions.
"""
