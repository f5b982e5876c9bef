"""
Core functionality for Stack Composer.

This package contains the raster model, pixel operations, the image
hierarchy, the view transform and the plane sources.
"""

__all__ = ['errors', 'raster', 'image_processor', 'hierarchy', 'view_transform',
           'viewport', 'image_loader', 'data_analyzer']
