"""
FastAPI Security Detection for tsroutes

Reads the security dependencies declared on an app's routes and reduces them to
the single AuthenticationDescriptor the generated client needs.
"""

import logging
from fastapi import FastAPI
from fastapi.routing import APIRoute
from typing import Iterator, Optional
from fastapi.security.base import SecurityBase
from fastapi.security import OAuth2, HTTPBasic, HTTPBearer, APIKeyHeader, APIKeyQuery, APIKeyCookie

from tsroutes.core.schema import AuthenticationDescriptor, AuthenticationMethod


logger = logging.getLogger(__name__)


def detect_authentication(app: FastAPI) -> Optional[AuthenticationDescriptor]:
    """
    Detect the app's authentication method from its security dependencies.

    The first security scheme found (routes in registration order, dependencies
    depth-first) decides the method. OAuth2 password flows also supply the login
    path from their tokenUrl.

    Returns:
        AuthenticationDescriptor, or None when no route declares security
    """
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        for scheme in iter_security_schemes(route.dependant):
            descriptor = security_scheme_to_descriptor(scheme)
            if descriptor is not None:
                logger.debug(f"Detected {descriptor.method.value} authentication on {route.path}")
                return descriptor
    return None


def iter_security_schemes(dependant) -> Iterator[SecurityBase]:
    """Yield security scheme instances among a Dependant's (nested) dependencies."""
    for sub_dependant in dependant.dependencies:
        if isinstance(sub_dependant.call, SecurityBase):
            yield sub_dependant.call
        yield from iter_security_schemes(sub_dependant)


def security_scheme_to_descriptor(scheme: SecurityBase) -> Optional[AuthenticationDescriptor]:
    """Map a FastAPI security scheme instance to an AuthenticationDescriptor."""
    if isinstance(scheme, OAuth2):
        return AuthenticationDescriptor(
            method=AuthenticationMethod.BEARER_OAUTH2,
            login_path=_extract_token_url(scheme),
        )

    elif isinstance(scheme, HTTPBearer):
        return AuthenticationDescriptor(method=AuthenticationMethod.BEARER)

    elif isinstance(scheme, HTTPBasic):
        return AuthenticationDescriptor(method=AuthenticationMethod.BASIC)

    elif isinstance(scheme, (APIKeyHeader, APIKeyQuery, APIKeyCookie)):
        return AuthenticationDescriptor(method=AuthenticationMethod.API_KEY)

    logger.debug(f"Unsupported security scheme {scheme.scheme_name}, ignoring")
    return None


def _extract_token_url(scheme: OAuth2) -> Optional[str]:
    """tokenUrl of the password flow, normalised to an absolute path."""
    flows = getattr(scheme.model, "flows", None)
    password_flow = getattr(flows, "password", None)
    token_url = getattr(password_flow, "tokenUrl", None)

    if not token_url:
        return None
    if token_url.startswith(("http://", "https://", "/")):
        return token_url
    return f"/{token_url}"
