"""
tsroutes App Integration

Config-driven integration API: introspects a FastAPI app (or takes route
descriptors directly), generates the TypeScript client module and writes it to
its output path.
"""

import logging
from pathlib import Path
from fastapi import FastAPI
from typing import List, Tuple, Optional

from tsroutes.core.exceptions import OutputWriteError
from tsroutes.core.config import load_tsroutes_config, TsRoutesConfig
from tsroutes.core.schema import RouteDescriptor, AuthenticationDescriptor, GeneratedModule


logger = logging.getLogger(__name__)


def integrate(
    app: FastAPI,
    output_path: Optional[str] = None,
    auth: Optional[AuthenticationDescriptor] = None,
    project_root: Optional[str] = None,
    verbose: bool = False,
    **options
) -> Tuple[List[RouteDescriptor], GeneratedModule]:
    """
    Integrate tsroutes with a FastAPI app: introspect, generate and write the client.

    Args:
        app: FastAPI application instance to introspect
        output_path: Where to write the module (defaults to the config's output,
            resolved against project_root)
        auth: Authentication to generate for; detected from the app's security
            dependencies when omitted, then taken from the config file
        project_root: Project root directory (defaults to current directory)
        verbose: Enable detailed logging output
        **options: Overrides for the loaded config:
            - omit_url_prefix: str
            - base_url: str
            - indent_size: int

    Returns:
        Tuple of (route descriptors, written GeneratedModule)

    Raises:
        GenerationError: If the routes cannot be turned into a valid client
        OutputWriteError: If the module cannot be written

    Examples:
        tsroutes.integrate(app)
        tsroutes.integrate(app, "web/src/api.ts", omit_url_prefix="/api/v1")
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s: %(message)s')

    project_root = _resolve_project_root(project_root)
    config = load_tsroutes_config(project_root)
    _apply_config_overrides(config, options)

    if verbose:
        logger.info("Starting tsroutes integration")
        logger.debug(f"Project root: {project_root}")
        logger.debug(f"Omit URL prefix: {config.omit_url_prefix}")
        logger.debug(f"Base URL: {config.base_url or 'window.location.origin'}")

    routes, detected_auth = introspect_only(app)
    auth = _resolve_auth(auth, detected_auth, config)

    if output_path is None:
        output_path = config.get_output_path(project_root)

    module = generate_client(routes, output_path, auth, config)

    if verbose:
        logger.info(f"Generated {len(routes)} route functions into {module.path}")
    else:
        print(f"tsroutes: Generated client for {len(routes)} routes -> {module.path}")

    return routes, module


def _resolve_project_root(project_root: Optional[str]) -> str:
    if project_root is None:
        return str(Path.cwd().resolve())
    return str(Path(project_root).resolve())


def _apply_config_overrides(config: TsRoutesConfig, options: dict):
    """Override config with explicit keyword options."""
    unknown = set(options) - {'omit_url_prefix', 'base_url', 'indent_size'}
    if unknown:
        raise TypeError(f"Unknown integrate() options: {', '.join(sorted(unknown))}")

    if options.get('omit_url_prefix') is not None:
        config.omit_url_prefix = options['omit_url_prefix']
    if options.get('base_url') is not None:
        config.base_url = options['base_url']
    if options.get('indent_size') is not None:
        if options['indent_size'] < 1:
            raise ValueError(f"indent_size must be positive, got {options['indent_size']}")
        config.indent_size = options['indent_size']


def _resolve_auth(
    explicit: Optional[AuthenticationDescriptor],
    detected: Optional[AuthenticationDescriptor],
    config: TsRoutesConfig,
) -> Optional[AuthenticationDescriptor]:
    """Explicit auth wins, then detected auth, then the config file's auth block."""
    if explicit is not None:
        return explicit

    configured = config.auth.to_descriptor()
    if detected is None:
        return configured

    if not detected.login_path and configured is not None and configured.method is detected.method:
        return AuthenticationDescriptor(method=detected.method, login_path=configured.login_path)
    return detected


# === CONVENIENCE FUNCTIONS === #

def introspect_only(app: FastAPI) -> Tuple[List[RouteDescriptor], Optional[AuthenticationDescriptor]]:
    """Convenience function for introspection only (no code generation)."""
    from tsroutes.introspection import collect_routes, detect_authentication

    routes = collect_routes(app)
    auth = detect_authentication(app)

    auth_name = auth.method.value if auth else "none"
    logger.info(f"Introspected {len(routes)} routes (auth: {auth_name})")
    return routes, auth


def generate_only(
    routes: List[RouteDescriptor],
    auth: Optional[AuthenticationDescriptor] = None,
    config: Optional[TsRoutesConfig] = None,
) -> str:
    """Convenience function to generate the module source without writing to disk."""
    from tsroutes.generators.typescript.pipeline import generate_typescript_client

    return generate_typescript_client(routes, auth, config)


def generate_client(
    routes: List[RouteDescriptor],
    output_path: str,
    auth: Optional[AuthenticationDescriptor] = None,
    config: Optional[TsRoutesConfig] = None,
) -> GeneratedModule:
    """Generate the module and write it to output_path, overwriting any previous file."""
    content = generate_only(routes, auth, config)
    module = GeneratedModule(content=content, path=str(output_path))
    write_generated_module(module)
    return module


def write_generated_module(module: GeneratedModule):
    """
    Write the generated module to its path, creating parent directories.

    Raises:
        OutputWriteError: If the file cannot be written; a partially written file is removed
    """
    if not module.path:
        raise OutputWriteError("generated module has no output path", path="")

    file_path = Path(module.path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(module.content, encoding='utf-8')
    except OSError as e:
        _remove_partial_file(file_path)
        raise OutputWriteError(f"Failed to write {file_path}: {e}", path=str(file_path)) from e

    logger.debug(f"Generated: {file_path}")


def _remove_partial_file(file_path: Path):
    try:
        if file_path.is_file():
            file_path.unlink()
    except OSError as e:
        logger.warning(f"Could not remove partial output {file_path}: {e}")
