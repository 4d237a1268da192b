"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- anthropic: Claude API client for narrative insights
- snowflake: Document persistence
- memory: In-memory document store for local development and tests

These wrappers translate between external formats and our domain models.
"""
