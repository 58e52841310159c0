# core/config.py
"""
tsroutes Configuration Management

Loads tsroutes.config.json (when present) and the environment override for the
URL prefix that generated function names omit. This is the only place the process
environment is consulted; the generators receive the resolved values.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from tsroutes.core.constants import GenerationPaths, OMIT_URL_ENV_VAR
from tsroutes.core.schema import AuthenticationDescriptor, AuthenticationMethod


__version__ = "0.3.1"

logger = logging.getLogger(__name__)


def get_version() -> str:
    return __version__


@dataclass
class AuthConfig:
    """Authentication declared in the config file, used when it cannot be introspected."""
    method: str = AuthenticationMethod.NONE.value
    loginPath: Optional[str] = None

    def to_descriptor(self) -> Optional[AuthenticationDescriptor]:
        auth_method = AuthenticationMethod(self.method)
        if auth_method is AuthenticationMethod.NONE:
            return None
        return AuthenticationDescriptor(method=auth_method, login_path=self.loginPath)


@dataclass
class TsRoutesConfig:
    """Complete tsroutes configuration."""
    output: str = GenerationPaths.DEFAULT_OUTPUT
    omit_url_prefix: Optional[str] = None      # Stripped from paths before deriving function names
    base_url: Optional[str] = None             # Default baseUrl, None -> window.location.origin
    indent_size: int = 2
    auth: AuthConfig = field(default_factory=AuthConfig)

    def __post_init__(self):
        if self.indent_size < 1:
            raise ValueError(f"indent_size must be positive, got {self.indent_size}")

    def get_output_path(self, project_root: str) -> str:
        """Absolute output path, relative outputs resolved against the project root."""
        output_path = Path(self.output)
        if not output_path.is_absolute():
            output_path = Path(project_root) / output_path
        return str(output_path)


def load_tsroutes_config(project_root: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> TsRoutesConfig:
    """
    Load tsroutes configuration from tsroutes.config.json or fall back to defaults.

    Args:
        project_root: Project root directory (defaults to current directory)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        TsRoutesConfig with file values and the environment override applied
    """
    if project_root is None:
        project_root = str(Path.cwd())
    if environ is None:
        environ = os.environ

    config_path = Path(project_root) / GenerationPaths.CONFIG_FILE

    if config_path.exists():
        config = _load_config_from_file(config_path)
    else:
        logger.debug(f"No {GenerationPaths.CONFIG_FILE} in {project_root}, using defaults")
        config = TsRoutesConfig()

    omit_url = environ.get(OMIT_URL_ENV_VAR)
    if omit_url:
        config.omit_url_prefix = omit_url

    return config


def _load_config_from_file(config_path: Path) -> TsRoutesConfig:
    """Load configuration from existing file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {config_path}: {e}") from e

    config = _validate_and_convert_config(config_data)
    logger.info(f"Loaded tsroutes config from {config_path}")
    return config


def _validate_and_convert_config(config_data: Dict[str, Any]) -> TsRoutesConfig:
    """Validate and convert raw config data to TsRoutesConfig object."""
    if not isinstance(config_data, dict):
        raise ValueError("tsroutes config must be a JSON object")

    auth_data = config_data.get("auth", {})
    auth_config = AuthConfig(
        method=auth_data.get("method", AuthenticationMethod.NONE.value),
        loginPath=auth_data.get("loginPath"),
    )

    valid_methods = [m.value for m in AuthenticationMethod]
    if auth_config.method not in valid_methods:
        raise ValueError(f"Invalid auth method '{auth_config.method}'. Supported: {', '.join(valid_methods)}")

    indent_size = config_data.get("indentSize", 2)
    if not isinstance(indent_size, int) or indent_size < 1:
        raise ValueError(f"Invalid indentSize: {indent_size}")

    return TsRoutesConfig(
        output=config_data.get("output", GenerationPaths.DEFAULT_OUTPUT),
        omit_url_prefix=config_data.get("omitUrlPrefix"),
        base_url=config_data.get("baseUrl"),
        indent_size=indent_size,
        auth=auth_config,
    )
