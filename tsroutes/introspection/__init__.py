"""
tsroutes introspection utilities - for advanced users building custom tools
"""

# Main introspection functions
from .routes import route_to_descriptors, collect_routes, convert_path_template
from .models import introspect_struct, is_struct_class
from .security import detect_authentication

# For plugin developers who want to extend introspection
from .parameters import extract_request_struct


__all__ = [
    # High-level functions
    'collect_routes',
    'route_to_descriptors',
    'detect_authentication',

    # Lower-level functions for extensions
    'introspect_struct', 'is_struct_class', 'extract_request_struct', 'convert_path_template'
]
