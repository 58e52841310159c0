"""
tsroutes - Schema-driven TypeScript client generation for HTTP routes
"""

def _check_dependencies():
    """Check for required dependencies"""
    missing = []

    try:
        import fastapi
    except ImportError:
        missing.append("fastapi")

    try:
        import pydantic
    except ImportError:
        missing.append("pydantic")

    if missing:
        deps = " and ".join(missing)
        raise ImportError(
            f"tsroutes requires {deps} to be installed.\n"
            f"Install with: pip install {' '.join(missing)}\n"
            f"tsroutes works with your existing {deps} versions."
        )

# Check dependencies on import
_check_dependencies()

# Import main API only after dependency check
from .core.config import get_version, load_tsroutes_config, TsRoutesConfig
from .core.exceptions import TsRoutesError, GenerationError, OutputWriteError
from .core.schema import (
    TypeKind,
    FieldTags,
    BindingKind,
    TypeDescriptor,
    FieldDescriptor,
    RouteDescriptor,
    GeneratedModule,
    AuthenticationMethod,
    AuthenticationDescriptor,
)
from .core.type_conversion import python_type_to_descriptor
from .core.integrator import integrate, introspect_only, generate_only, generate_client, write_generated_module

__version__ = get_version()

__all__ = [
    # Main functions
    'integrate',
    'introspect_only',
    'generate_only',
    'generate_client',
    'write_generated_module',
    'python_type_to_descriptor',
    'load_tsroutes_config',

    # Descriptors
    'TypeKind',
    'FieldTags',
    'BindingKind',
    'TypeDescriptor',
    'FieldDescriptor',
    'RouteDescriptor',
    'GeneratedModule',
    'AuthenticationMethod',
    'AuthenticationDescriptor',
    'TsRoutesConfig',

    # Errors
    'TsRoutesError',
    'GenerationError',
    'OutputWriteError',

    # Version
    '__version__'
]
