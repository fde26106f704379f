"""
Host classification and the request gate.
"""
