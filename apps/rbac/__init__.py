"""
RBAC (Role-Based Access Control) application.

Provides:
- Identity mirror of the external provider (User)
- Identity-token authentication middleware
- Role hierarchy and the Role Policy
- Membership lookups and DRF permission classes
"""
