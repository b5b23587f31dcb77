"""Shared test data for prtimeline tests."""
