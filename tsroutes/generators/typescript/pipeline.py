"""
tsroutes Generation Pipeline

Assembles one self-contained TypeScript client module: file header, runtime
preamble (base URL state, auth headers, fetchJson, optional login), interfaces for
every named struct the routes reference, then one function per route.
"""

import logging
from typing import List, Dict, Optional

from tsroutes.core.config import TsRoutesConfig
from tsroutes.core.exceptions import GenerationError
from tsroutes.core.constants import TsRoutesRuntime, StorageKeys, GENERATED_FILE_HEADER
from tsroutes.core.schema import RouteDescriptor, AuthenticationDescriptor, AuthenticationMethod
from tsroutes.generators.typescript.interfaces import generate_interface, collect_interface_structs
from tsroutes.generators.typescript.clients import generate_fetch_wrapper, generate_function_name, CodeBuilder
from tsroutes.generators.typescript.clients.utils import quote_string, escape_template_literal


logger = logging.getLogger(__name__)

END_OF_MODULE_MARKER = "// end of generated code"


def generate_typescript_client(
    routes: List[RouteDescriptor],
    auth: Optional[AuthenticationDescriptor] = None,
    config: Optional[TsRoutesConfig] = None,
) -> str:
    """
    Generate the complete TypeScript client module.

    Args:
        routes: Route descriptors, emitted in the given order
        auth: Declared authentication (None -> no auth logic, no login)
        config: Generation settings

    Returns:
        Module source text; identical inputs give byte-identical output

    Raises:
        GenerationError: If any route cannot be emitted or two routes share a function name
    """
    config = config or TsRoutesConfig()
    _check_duplicate_function_names(routes, config.omit_url_prefix)

    sections = [
        GENERATED_FILE_HEADER.rstrip("\n"),
        generate_runtime_preamble(auth, config),
    ]

    interface_sections = [generate_interface(struct, config.indent_size) for struct in collect_interface_structs(routes)]
    sections.extend(interface for interface in interface_sections if interface)

    for route in routes:
        sections.append(generate_fetch_wrapper(route, config))

    sections.append(END_OF_MODULE_MARKER)

    logger.debug(
        f"Generated client: {len(interface_sections)} interfaces, {len(routes)} functions, "
        f"runtime exports {', '.join(TsRoutesRuntime.get_exported_names())}"
    )
    return "\n\n".join(sections) + "\n"


def _check_duplicate_function_names(routes: List[RouteDescriptor], omit_url_prefix: Optional[str]):
    seen: Dict[str, RouteDescriptor] = {}
    for route in routes:
        name = generate_function_name(route, omit_url_prefix)
        if name in seen:
            raise GenerationError(
                f"function name '{name}' is also generated for {seen[name].label}",
                route.label,
            )
        seen[name] = route


# === RUNTIME PREAMBLE === #

def generate_runtime_preamble(auth: Optional[AuthenticationDescriptor], config: Optional[TsRoutesConfig] = None) -> str:
    """Static runtime support emitted once per module."""
    config = config or TsRoutesConfig()
    builder = CodeBuilder(config.indent_size)

    _generate_state_lines(builder, config)
    builder.add_line()
    _generate_error_class_lines(builder)
    builder.add_line()
    _generate_base_config_lines(builder, auth)
    builder.add_line()
    _generate_fetch_json_lines(builder)

    if auth is not None and auth.has_login:
        builder.add_line()
        _generate_login_lines(builder, auth)

    return builder.get_code()


def _generate_state_lines(builder: CodeBuilder, config: TsRoutesConfig):
    base_url_var = TsRoutesRuntime.BASE_URL_VAR
    handler_var = TsRoutesRuntime.UNAUTHORIZED_HANDLER_VAR

    if config.base_url is not None:
        default_base_url = quote_string(config.base_url)
    else:
        default_base_url = "typeof window !== 'undefined' ? window.location.origin : ''"

    builder.add_line(f"let {base_url_var}: string = {default_base_url};")
    builder.add_line(f"let {handler_var}: (() => void) | undefined;")
    builder.add_line()

    with builder.add_block(f"export function {TsRoutesRuntime.SET_BASE_URL_FN}(url: string): void {{"):
        builder.add_line(f"{base_url_var} = url;")
    builder.add_line()

    with builder.add_block(
        f"export function {TsRoutesRuntime.SET_UNAUTHORIZED_HANDLER_FN}(handler: (() => void) | undefined): void {{"
    ):
        builder.add_line(f"{handler_var} = handler;")


def _generate_error_class_lines(builder: CodeBuilder):
    error_class = TsRoutesRuntime.REQUEST_ERROR_CLASS

    with builder.add_block(f"export class {error_class} extends Error {{"):
        builder.add_lines([
            "readonly url: string;",
            "readonly status: number;",
            "readonly statusText: string;",
            "",
        ])
        with builder.add_block("constructor(url: string, status: number, statusText: string) {"):
            builder.add_lines([
                "super(`Request to ${url} failed: ${status} ${statusText}`);",
                f"this.name = {quote_string(error_class)};",
                "this.url = url;",
                "this.status = status;",
                "this.statusText = statusText;",
            ])


def _generate_base_config_lines(builder: CodeBuilder, auth: Optional[AuthenticationDescriptor]):
    """getBaseConfig() with the auth headers of the declared method, read from localStorage."""
    method = auth.method if auth is not None else AuthenticationMethod.NONE

    if method is AuthenticationMethod.NONE:
        with builder.add_block(f"function {TsRoutesRuntime.GET_BASE_CONFIG_FN}(): RequestInit {{"):
            builder.add_line("return {};")
        return

    with builder.add_block("function readStored(key: string): string | null {"):
        builder.add_line("return typeof localStorage !== 'undefined' ? localStorage.getItem(key) : null;")
    builder.add_line()

    with builder.add_block(f"function {TsRoutesRuntime.GET_BASE_CONFIG_FN}(): RequestInit {{"):
        builder.add_line("const headers: Record<string, string> = {};")

        if method in (AuthenticationMethod.BEARER, AuthenticationMethod.BEARER_OAUTH2):
            builder.add_line(f"const token = readStored({quote_string(StorageKeys.TOKEN)});")
            with builder.add_block("if (token) {"):
                builder.add_line("headers['Authorization'] = `Bearer ${token}`;")

        elif method is AuthenticationMethod.BASIC:
            builder.add_line(f"const username = readStored({quote_string(StorageKeys.USERNAME)});")
            builder.add_line(f"const password = readStored({quote_string(StorageKeys.PASSWORD)});")
            with builder.add_block("if (username && password) {"):
                builder.add_line("headers['Authorization'] = `Basic ${btoa(`${username}:${password}`)}`;")

        elif method is AuthenticationMethod.API_KEY:
            builder.add_line(f"const apiKey = readStored({quote_string(StorageKeys.API_KEY)});")
            with builder.add_block("if (apiKey) {"):
                builder.add_line("headers['X-API-Key'] = apiKey;")

        builder.add_line("return { headers };")


def _generate_fetch_json_lines(builder: CodeBuilder):
    """
    fetchJson<T>: header precedence defaults < base config < caller; network errors
    surface as status 0; a handled 401 resolves undefined.
    """
    error_class = TsRoutesRuntime.REQUEST_ERROR_CLASS
    handler_var = TsRoutesRuntime.UNAUTHORIZED_HANDLER_VAR

    with builder.add_block(
        f"async function {TsRoutesRuntime.FETCH_JSON_FN}<T>(url: string, init: RequestInit = {{}}): Promise<T> {{"
    ):
        builder.add_line(f"const baseConfig = {TsRoutesRuntime.GET_BASE_CONFIG_FN}();")
        builder.add_line("const headers = new Headers({ 'Content-Type': 'application/json', 'Accept': 'application/json' });")
        builder.add_line("new Headers(baseConfig.headers).forEach((value, key) => headers.set(key, value));")
        builder.add_line("new Headers(init.headers).forEach((value, key) => headers.set(key, value));")
        builder.add_line()
        builder.add_line("let response: Response;")
        with builder.add_block("try {", "} catch (error) {"):
            builder.add_line("response = await fetch(url, { ...baseConfig, ...init, headers });")
        builder.indent()
        builder.add_line(f"throw new {error_class}(url, 0, error instanceof Error ? error.message : String(error));")
        builder.dedent()
        builder.add_line("}")
        builder.add_line()

        with builder.add_block("if (response.status === 401) {"):
            with builder.add_block(f"if ({handler_var}) {{"):
                builder.add_line(f"{handler_var}();")
                builder.add_line("return undefined as T;")
            builder.add_line(f"throw new {error_class}(url, response.status, response.statusText);")
        with builder.add_block("if (response.status < 200 || response.status >= 400) {"):
            builder.add_line(f"throw new {error_class}(url, response.status, response.statusText);")
        with builder.add_block("if (response.status === 204) {"):
            builder.add_line("return undefined as T;")
        builder.add_line("return (await response.json()) as T;")


def _generate_login_lines(builder: CodeBuilder, auth: AuthenticationDescriptor):
    """login(username, password): form-encoded POST, token persisted under the method's key."""
    error_class = TsRoutesRuntime.REQUEST_ERROR_CLASS
    login_url = _login_url_expression(auth.login_path)

    if auth.method is AuthenticationMethod.API_KEY:
        storage_key = StorageKeys.API_KEY
    else:
        storage_key = StorageKeys.TOKEN

    with builder.add_block(
        f"export async function {TsRoutesRuntime.LOGIN_FN}(username: string, password: string): Promise<string> {{"
    ):
        builder.add_line(f"const url = {login_url};")
        builder.add_line("let response: Response;")
        with builder.add_block("try {", "} catch (error) {"):
            with builder.add_block("response = await fetch(url, {", "});"):
                builder.add_line("method: 'POST',")
                builder.add_line("headers: { 'Content-Type': 'application/x-www-form-urlencoded' },")
                builder.add_line("body: new URLSearchParams({ username, password }).toString(),")
        builder.indent()
        builder.add_line(f"throw new {error_class}(url, 0, error instanceof Error ? error.message : String(error));")
        builder.dedent()
        builder.add_line("}")
        with builder.add_block("if (!response.ok) {"):
            builder.add_line(f"throw new {error_class}(url, response.status, response.statusText);")
        builder.add_line()
        builder.add_line("const data = await response.json();")
        builder.add_line("const token: string = data.access_token ?? data.token;")
        builder.add_line(f"localStorage.setItem({quote_string(storage_key)}, token);")
        if auth.method is AuthenticationMethod.BASIC:
            builder.add_line(f"localStorage.setItem({quote_string(StorageKeys.USERNAME)}, username);")
            builder.add_line(f"localStorage.setItem({quote_string(StorageKeys.PASSWORD)}, password);")
        builder.add_line("return token;")


def _login_url_expression(login_path: str) -> str:
    """Absolute login URLs are used as-is, paths are resolved against baseUrl."""
    if login_path.startswith(("http://", "https://")):
        return quote_string(login_path)
    return f"`${{{TsRoutesRuntime.BASE_URL_VAR}}}{escape_template_literal(login_path)}`"
