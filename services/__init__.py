"""
Service layer for business logic.

Services take an AsyncSession (and, where needed, a workspace) and commit
their own writes.
"""
