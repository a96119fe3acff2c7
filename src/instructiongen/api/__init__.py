"""InstructionGen — FastAPI REST API layer.

This package contains the FastAPI application, Pydantic response models, and
the in-memory session registry.

Modules
-------
main
    FastAPI application with all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API responses.
session_store
    Least-recently-used registry of analysis sessions.
"""
