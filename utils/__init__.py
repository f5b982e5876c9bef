"""
Utility functions for Stack Composer.

This package contains helper modules for logging and configuration used
across the application.
"""

__all__ = ['logger', 'config']
