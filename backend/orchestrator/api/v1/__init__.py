"""Versioned routers."""
