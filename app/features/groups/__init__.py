"""
Shop group management feature module.

Keeps three views consistent: the shop's group catalog, each user's
per-shop memberships, and each user's per-shop effective permissions.
"""
