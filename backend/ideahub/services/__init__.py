# Services package init
"""
IdeaHub Backend — Services Layer
=================================

What:  Business logic between routes (HTTP) and stores (persistence).
Why:   Routes handle HTTP, services handle rules. Services are unit-tested
       against in-memory stores without any HTTP overhead.

Service Inventory:
    - validation.py:   validate_idea_payload(), collects every violated rule
    - sanitizer.py:    sanitize_markdown(), strips executable markup
    - idea_service.py: IdeaService, the list/get/create/update/archive flows
"""
