"""
Keygate record store.

A small FastAPI service that issues time-limited access keys, binds them
to an email on first login and keeps a per-user blob of projects and
settings in a single store.
"""
