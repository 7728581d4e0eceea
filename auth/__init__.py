"""auth/ -- Credentials, tokens, access checks and the account lifecycle.

Layer rule: auth/ imports stdlib, third-party libraries and core.config
(passwords.py only, for the bcrypt cost). It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
