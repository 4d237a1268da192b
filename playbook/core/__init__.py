"""
Core business logic for program editing and performance logging.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. Every component receives its store handle
at construction, so the whole core runs against the in-memory store in
tests.
"""
