"""Authorization core for the marketplace admin platform.

Decides whether the logged-in employee may perform an action on a resource
and which branch-scoped records that employee may see.
"""
