# Services package init
"""
CodeVault Backend — Services Layer
====================================

Service Inventory:
    - PasswordHasher: salted Argon2 digests (password_service.py)
    - TokenService:   JWT issue/verify (token_service.py)
    - AuthService:    register, login, profile (auth_service.py)
    - SnippetService: snippet CRUD, visibility, listing (snippet_service.py)

Services take the request's AsyncSession as an argument and never touch
HTTP objects, so they are unit-tested against a bare session.
"""
