"""
Organizations, memberships and the privileged actions that change them.
"""
