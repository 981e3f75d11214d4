"""auth/ -- Authentication package for CrudAdmin.

Password hashing, cookie sessions, credential checks, and the auth gate.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, web/, or customers/.
api/ and web/ import from auth/, not the other way around.
"""
