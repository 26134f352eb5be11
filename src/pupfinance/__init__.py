"""Pup Finance API.

Identity-provider backed authentication, permission and role gates, user
synchronization from the identity provider, and the request audit trail.
"""

__version__ = "0.1.0"
