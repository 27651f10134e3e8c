"""Shared utilities for wattmon."""
