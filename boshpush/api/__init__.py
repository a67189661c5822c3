"""Control Plane Package

FastAPI app exposing session registration, badge updates and status.
"""
