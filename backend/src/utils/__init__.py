"""
Utility modules for the event scheduler backend.

This package contains shared utilities used across the application:
- logging_config: Named loggers (console in development, JSON files in production)
- view_renderer: Jinja2 rendering and view models for the browser client
"""
