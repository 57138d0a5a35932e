"""Integration tests for the election document API.

These tests drive the FastAPI application in-process through httpx's
ASGI transport, with the in-memory document store standing in for
GitHub or Redis:

- Collection listings
- Voting ID checks and vote submission
- Candidate registration
- Error mapping, bearer authentication and health checks
"""
