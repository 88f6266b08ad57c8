"""
Core business logic for athlete progress tracking.

This module is framework-agnostic - it doesn't import FastAPI, httpx,
or any infrastructure concerns. This separation means we can test the
scheduling and connection rules in isolation.
"""
