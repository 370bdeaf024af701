# accessforge/core/__init__.py
"""Shared configuration, logging, constants and exceptions."""
