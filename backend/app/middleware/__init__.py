# Middleware package init
"""
Notes Keyset API — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID for logs, error bodies, and the response header
    2. Logging: one access line per request, tagged with the request ID
    3. GZip / CORS: added by FastAPI (see app.main.create_app)
"""
