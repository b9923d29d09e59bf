"""
cas_authz.api

API package for the CAS-protected demo service.

Responsibilities:
- FastAPI app factory and router modules.
"""
