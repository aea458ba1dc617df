# Services package init
"""
Notes Keyset API — Services Layer
==================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
Why:   Separation of concerns — routes handle HTTP, services handle business rules.

Service Inventory:
    - cursor_codec:   SortKey <-> opaque URL-safe cursor token (optionally HMAC-signed)
    - keyset_planner: seek predicate, ordering, probe-row fetch, page assembly
    - note_service:   note listing and CRUD on top of the two above

Why services are separate from routes:
    1. Testability: the codec and planner are unit-tested without HTTP or a database
    2. Reusability: the same planner can paginate any (timestamp, unique id) ordering
    3. Single responsibility: Routes handle HTTP; services handle logic
"""
