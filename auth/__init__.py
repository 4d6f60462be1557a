"""auth/ -- Token codec, auth core and role guard shared by every AgroSense service.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/, sensors/, or parcels/.
api/ imports from auth/, not the other way around.
"""
