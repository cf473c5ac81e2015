# Stores package init
"""
IdeaHub Backend — Persistence Collaborators
============================================

What:  The three backends the gateway talks to: credentials, rate-limit
       counters and idea records.
How:   `base.py` defines the abstract contracts; the SQL implementations
       live beside it and are wired in by ideahub.dependencies.

Store Inventory:
    - SqlCredentialStore:   api_keys (issue, validate, usage tracking)
    - SqlRateLimiter:       api_rate_limits (atomic upsert per window)
    - InMemoryRateLimiter:  process-local counters (RATE_LIMIT_BACKEND=memory)
    - SqlIdeaStore:         ideas (owner-scoped CRUD and status counts)
"""
