# Auth package init
"""
IdeaHub Backend — API Key Authentication
=========================================

What:  The gateway checks that run before any handler: key present, key
       format, key lookup, key validity, permission, hourly quota.
How:   `ApiKeyAuth` is a FastAPI dependency. Routes declare it once and
       receive the resolved KeyRecord, or the request ends with the error
       of the first check that failed.
"""
