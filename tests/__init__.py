# Auth API test suite
"""
Unit tests for the auth core plus HTTP tests through FastAPI's TestClient.

Run with: pytest
Store, email and clock are in-memory fakes (see conftest.py); no database
or network is needed.
"""
