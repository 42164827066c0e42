"""quicktoshl -- a small command-line client for the Toshl Finance API.

The package submits transactions and looks up reference data (categories,
tags, accounts, currencies) for interactive use and for AI tool calls.
Reference data sits behind an in-memory conditional cache that revalidates
with ``ETag`` / ``Last-Modified`` and serves recent data when the API cannot
be reached.

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for configuration and API payloads.
    config: XDG-aware configuration loading and credential resolution.
    cache: In-memory cache store and conditional fetch orchestration.
    client: HTTP transport and the Toshl API client.
    tools: AI-facing operations (add expense, search entries).
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.3.0"
