"""Shared test fixtures for the Events API client."""
