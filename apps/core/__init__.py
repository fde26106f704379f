"""
Shared building blocks: base model, error taxonomy, action results,
logging and request middleware.
"""
