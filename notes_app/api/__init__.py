"""Notes App REST API package.

Sub-modules expose FastAPI routers for each domain:
- auth: sign-in, sign-out and current session
- notes: note list, create and delete
"""
