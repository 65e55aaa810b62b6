"""auth/ -- Authentication-flow profiles and server-side method enforcement.

Layer rule: auth/ may import from core/ (the kernel) for settings.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
