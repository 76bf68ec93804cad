# Routes package init
"""
CodeVault Backend — API Routes Package
========================================

Route Inventory:
    - auth.py:      POST /api/auth/register, POST /api/auth/login,
                    GET/PUT /api/auth/me
    - snippets.py:  /api/snippets CRUD, /api/snippets/public,
                    POST /api/snippets/{id}/copy
    - health.py:    GET /health

Design Principle:
    Routes are THIN: resolve the caller, call a service, shape the response.
    Ownership and visibility rules live in the services.
"""
