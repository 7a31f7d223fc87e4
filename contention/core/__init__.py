"""Core plumbing between the primitives and the Display (snapshots, activity log, app context).

Kept free of FastAPI concerns so it can be reused by API routes, scripts, and tests.
"""
