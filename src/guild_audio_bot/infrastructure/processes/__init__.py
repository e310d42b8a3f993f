"""Resolver subprocess tracking."""
