# Routes package init
"""
Notes Keyset API — API Routes Package
======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles a specific resource or action.

Route Inventory:
    - notes.py:   GET    /api/notes            (keyset-paginated list)
                  POST   /api/notes            (create)
                  GET    /api/notes/{id}       (detail)
                  PUT    /api/notes/{id}       (update title/content)
                  DELETE /api/notes/{id}       (delete)
    - health.py:  GET    /health               (service health check)

Design Principle:
    Routes should be THIN — they handle HTTP concerns only:
    - Extract data from request (query params, body)
    - Call the appropriate service
    - Format the response with correct status code and headers

    Page size and cursor checks live in the service layer, not in Query()
    constraints, so they answer 400 with the application error body instead
    of FastAPI's generic 422.
"""
