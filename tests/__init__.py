"""
Saferpay Payment Service Test Suite

This package contains all tests for the payment service including:
- Unit tests for the Saferpay API client
- Provider tests for configuration, request assembly and payment lifecycle
- HTTP API tests with a SQLite order database
"""
