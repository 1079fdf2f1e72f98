"""Shared utilities: errors, logging, constants and protocols."""
