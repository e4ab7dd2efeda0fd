"""Packaged JSON schemas for recipex configuration files."""
