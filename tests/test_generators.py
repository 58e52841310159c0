"""
Code generation tests for TypeScript types, interfaces, route functions and the module
"""

import pytest

from tsroutes.core.config import TsRoutesConfig
from tsroutes.core.exceptions import GenerationError
from tsroutes.core.constants import TsRoutesRuntime
from tsroutes.core.integrator import generate_only
from tsroutes.core.schema import (
    TypeKind, TypeDescriptor, FieldDescriptor, RouteDescriptor,
    AuthenticationMethod, AuthenticationDescriptor,
)
from tsroutes.generators.typescript.interfaces import (
    generate_interface,
    generate_body_interfaces,
    collect_interface_structs,
    convert_type_to_typescript,
)
from tsroutes.generators.typescript.pipeline import generate_runtime_preamble, generate_typescript_client
from tsroutes.generators.typescript.clients import generate_fetch_wrapper, generate_function_name, CodeBuilder


INT = TypeDescriptor.primitive(TypeKind.INT)
UINT = TypeDescriptor.primitive(TypeKind.UINT)
FLOAT = TypeDescriptor.primitive(TypeKind.FLOAT)
BOOL = TypeDescriptor.primitive(TypeKind.BOOL)
STRING = TypeDescriptor.primitive(TypeKind.STRING)


def _profile_struct():
    return TypeDescriptor.struct("Profile", [
        FieldDescriptor.of("Bio", STRING, 'json:"bio"'),
    ])


def _user_struct(profile=None):
    return TypeDescriptor.struct("User", [
        FieldDescriptor.of("ID", INT, 'json:"id"'),
        FieldDescriptor.of("Name", STRING, 'json:"name"'),
        FieldDescriptor.of("Password", STRING, 'json:"-"'),
        FieldDescriptor.of("Nickname", STRING, 'json:"nickname,omitempty"'),
        FieldDescriptor.of("Profile", TypeDescriptor.pointer(profile or _profile_struct()), 'json:"profile"'),
    ])


def _get_user_route(user=None):
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("ID", INT, 'path:"id"')])
    return RouteDescriptor("GET", "/users/:id", request_type=request, response_type=user or _user_struct())


# === TYPE MAPPING === #

def test_primitive_type_mapping():
    assert convert_type_to_typescript(STRING) == "string"
    assert convert_type_to_typescript(BOOL) == "boolean"
    assert convert_type_to_typescript(INT) == "number"
    assert convert_type_to_typescript(UINT) == "number"
    assert convert_type_to_typescript(FLOAT) == "number"


def test_composite_type_mapping():
    assert convert_type_to_typescript(TypeDescriptor.pointer(STRING)) == "string | null"
    assert convert_type_to_typescript(TypeDescriptor.slice(INT)) == "Array<number>"
    assert convert_type_to_typescript(TypeDescriptor.slice(TypeDescriptor.pointer(INT))) == "Array<number | null>"
    assert convert_type_to_typescript(TypeDescriptor.pointer(TypeDescriptor.slice(STRING))) == "Array<string> | null"
    assert convert_type_to_typescript(_user_struct()) == "User"


def test_fallback_type_mapping():
    assert convert_type_to_typescript(None) == "void"
    assert convert_type_to_typescript(TypeDescriptor(kind=TypeKind.MAP)) == "any"
    assert convert_type_to_typescript(TypeDescriptor.any()) == "any"


def test_anonymous_struct_is_inlined():
    inline = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("A", STRING, 'json:"a"'),
        FieldDescriptor.of("B", INT, 'json:"b,omitempty"'),
        FieldDescriptor.of("C", INT, 'json:"-"'),
    ])

    assert convert_type_to_typescript(inline) == "{ a: string; b?: number }"
    assert convert_type_to_typescript(TypeDescriptor.anonymous_struct([])) == "{}"


# === INTERFACES === #

def test_interface_skips_json_dash_fields_and_keeps_order():
    result = generate_interface(_user_struct())

    assert result == (
        "export interface User {\n"
        "  id: number;\n"
        "  name: string;\n"
        "  nickname?: string;\n"
        "  profile: Profile | null;\n"
        "}"
    )


def test_interface_quotes_non_identifier_names():
    struct = TypeDescriptor.struct("Headers", [
        FieldDescriptor.of("ContentType", STRING, 'json:"content-type"'),
    ])

    assert "  'content-type': string;" in generate_interface(struct)


def test_interface_respects_indent_size():
    assert "    id: number;" in generate_interface(_user_struct(), indent_size=4)


def test_interface_requires_named_struct():
    assert generate_interface(STRING) == ""
    assert generate_interface(TypeDescriptor.anonymous_struct([])) == ""


def test_body_interfaces_unwrap_pointers_and_slices():
    request = TypeDescriptor.pointer(TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("ID", INT, path="id"),
        FieldDescriptor.of("Users", TypeDescriptor.slice(_user_struct()), body="users"),
    ]))

    interfaces = generate_body_interfaces(request)

    assert len(interfaces) == 1
    assert interfaces[0].startswith("export interface User {")
    assert generate_body_interfaces(None) == []


def test_collect_interface_structs_order_and_dedup():
    profile = _profile_struct()
    user = _user_struct(profile)
    team = TypeDescriptor.struct("Team", [FieldDescriptor.of("Members", TypeDescriptor.slice(user), 'json:"members"')])
    team.fields.append(FieldDescriptor.of("Parent", TypeDescriptor.pointer(team), 'json:"parent"'))

    create = RouteDescriptor(
        "POST", "/teams",
        request_type=TypeDescriptor.anonymous_struct([FieldDescriptor.of("Owner", user, body="owner")]),
        response_type=team,
    )
    routes = [create, _get_user_route(user)]

    names = [struct.name for struct in collect_interface_structs(routes)]

    assert names == ["User", "Profile", "Team"]


# === ROUTE FUNCTIONS === #

def test_function_name_from_method_and_path():
    assert generate_function_name(_get_user_route()) == "get_users_id"
    assert generate_function_name(RouteDescriptor("POST", "/users/@me/avatar.png")) == "post_users_me_avatar_png"
    assert generate_function_name(RouteDescriptor("GET", "/api/v1/users"), "/api/v1") == "get_users"


def test_path_placeholder_is_interpolated():
    code = generate_fetch_wrapper(_get_user_route())

    assert "/** GET /users/:id */" in code
    assert "export async function get_users_id(ID: number): Promise<User> {" in code
    assert "const url = `${baseUrl}/users/${encodeURIComponent(String(ID))}`;" in code
    assert "method: 'GET'," in code
    assert "return fetchJson<User>(url, config);" in code


def test_query_fields_join_with_single_question_mark():
    request = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("Page", INT, query="page"),
        FieldDescriptor.of("Size", INT, query="size"),
    ])
    route = RouteDescriptor("GET", "/items", request_type=request, response_type=TypeDescriptor.slice(STRING))

    code = generate_fetch_wrapper(route)

    assert "url += `?page=${encodeURIComponent(String(Page))}&size=${encodeURIComponent(String(Size))}`;" in code
    assert code.count("?") == 1
    assert code.count("&") == 1
    assert "Promise<Array<string>>" in code


def _user_write_request():
    return TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("ID", INT, path="id"),
        FieldDescriptor.of("Payload", _user_struct(), body="payload"),
    ])


def test_body_sent_for_post_but_not_for_get():
    post = generate_fetch_wrapper(RouteDescriptor("POST", "/users/:id", request_type=_user_write_request()))
    get = generate_fetch_wrapper(RouteDescriptor("GET", "/users/:id", request_type=_user_write_request()))

    assert "body: JSON.stringify(Payload)," in post
    assert "Promise<void>" in post
    assert "JSON.stringify" not in get
    assert "Payload: User" in get


def test_header_fields_are_sent():
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("Trace", STRING, header="X-Trace-Id")])

    code = generate_fetch_wrapper(RouteDescriptor("DELETE", "/sessions", request_type=request))

    assert "headers: {" in code
    assert "'X-Trace-Id': String(Trace)," in code


def test_reserved_parameter_names_are_suffixed():
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("delete", BOOL, query="delete")])

    code = generate_fetch_wrapper(RouteDescriptor("GET", "/items", request_type=request))

    assert "(delete_value: boolean)" in code
    assert "delete=${encodeURIComponent(String(delete_value))}" in code


@pytest.mark.parametrize("name", ["url", "config", "baseUrl", "fetchJson", "String", "arguments"])
def test_parameters_do_not_shadow_generated_identifiers(name):
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of(name, STRING, header="X-Value")])

    code = generate_fetch_wrapper(RouteDescriptor("POST", "/x", request_type=request))

    assert f"post_x({name}_value: string)" in code
    assert f"'X-Value': String({name}_value)," in code


def test_url_query_field_keeps_local_url_intact():
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("url", STRING, query="url")])

    code = generate_fetch_wrapper(RouteDescriptor("GET", "/shorten", request_type=request, response_type=STRING))

    assert "export async function get_shorten(url_value: string): Promise<string> {" in code
    assert "let url = `${baseUrl}/shorten`;" in code
    assert "url += `?url=${encodeURIComponent(String(url_value))}`;" in code


def test_base_url_field_does_not_replace_module_base_url():
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("baseUrl", STRING, query="base")])

    code = generate_fetch_wrapper(RouteDescriptor("GET", "/x", request_type=request))

    assert "let url = `${baseUrl}/x`;" in code
    assert "url += `?base=${encodeURIComponent(String(baseUrl_value))}`;" in code


def test_sanitised_parameter_names_are_deduplicated():
    request = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("a-b", STRING, query="first"),
        FieldDescriptor.of("a_b", STRING, query="second"),
    ])

    code = generate_fetch_wrapper(RouteDescriptor("GET", "/pairs", request_type=request))

    assert "get_pairs(a_b: string, a_b_value: string)" in code
    assert "?first=${encodeURIComponent(String(a_b))}&second=${encodeURIComponent(String(a_b_value))}`;" in code


# === NULLABLE PARAMETERS === #

def test_nullable_query_fields_are_optional_and_skipped_when_unset():
    request = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("Page", INT, query="page"),
        FieldDescriptor.of("Limit", TypeDescriptor.pointer(INT), query="limit"),
        FieldDescriptor.of("Tag", STRING, 'query:"tag" json:",omitempty"'),
    ])

    code = generate_fetch_wrapper(RouteDescriptor("GET", "/items", request_type=request))

    assert "get_items(Page: number, Limit?: number | null, Tag?: string)" in code
    assert "let url = `${baseUrl}/items`;" in code
    assert "const query: string[] = [];" in code
    assert "query.push(`page=${encodeURIComponent(String(Page))}`);" in code
    assert "if (Limit != null) query.push(`limit=${encodeURIComponent(String(Limit))}`);" in code
    assert "if (Tag != null) query.push(`tag=${encodeURIComponent(String(Tag))}`);" in code
    assert "if (query.length > 0) url += `?${query.join('&')}`;" in code


def test_nullable_parameter_before_required_one_stays_positional():
    request = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("DryRun", TypeDescriptor.pointer(BOOL), query="dry_run"),
        FieldDescriptor.of("Payload", _user_struct(), body="payload"),
    ])

    code = generate_fetch_wrapper(RouteDescriptor("POST", "/users", request_type=request))

    assert "post_users(DryRun: boolean | null, Payload: User)" in code
    assert "if (DryRun != null) query.push(" in code


def test_nullable_header_is_sent_only_when_set():
    request = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("Trace", TypeDescriptor.pointer(STRING), header="X-Trace-Id"),
    ])

    code = generate_fetch_wrapper(RouteDescriptor("DELETE", "/sessions", request_type=request))

    assert "delete_sessions(Trace?: string | null)" in code
    assert "...(Trace != null ? { 'X-Trace-Id': String(Trace) } : {})," in code


def test_docstring_becomes_jsdoc():
    route = RouteDescriptor("GET", "/health", docstring="Service health check")

    code = generate_fetch_wrapper(route)

    assert code.startswith("/** Service health check */")
    assert "export async function get_health(): Promise<void> {" in code


def test_placeholder_without_path_field_raises():
    with pytest.raises(GenerationError, match=":id"):
        generate_fetch_wrapper(RouteDescriptor("GET", "/users/:id"))


def test_path_field_without_placeholder_raises():
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("ID", INT, path="id")])

    with pytest.raises(GenerationError, match="no ':id' placeholder"):
        generate_fetch_wrapper(RouteDescriptor("GET", "/users", request_type=request))


def test_multiple_body_fields_raise():
    request = TypeDescriptor.anonymous_struct([
        FieldDescriptor.of("A", STRING, body="a"),
        FieldDescriptor.of("B", STRING, body="b"),
    ])

    with pytest.raises(GenerationError, match="more than one body"):
        generate_fetch_wrapper(RouteDescriptor("POST", "/things", request_type=request))


def test_unbound_fields_without_body_field_raise_for_post():
    request = TypeDescriptor.anonymous_struct([FieldDescriptor.of("Name", STRING, 'json:"name"')])

    with pytest.raises(GenerationError, match="no binding"):
        generate_fetch_wrapper(RouteDescriptor("POST", "/things", request_type=request))


def test_unsupported_method_raises():
    with pytest.raises(GenerationError, match="unsupported HTTP method"):
        generate_fetch_wrapper(RouteDescriptor("TRACE", "/debug"))


def test_function_body_respects_indent_size():
    code = generate_fetch_wrapper(_get_user_route(), TsRoutesConfig(indent_size=4))

    assert "\n    const url = " in code
    assert "\n        method: 'GET'," in code


# === CODE BUILDER === #

def test_code_builder_blocks_and_blank_lines():
    builder = CodeBuilder(indent_size=2)
    with builder.add_block("if (ok) {"):
        builder.add_line("run();")
        builder.add_line()
        builder.add_line("done();")

    assert builder.get_code() == "if (ok) {\n  run();\n\n  done();\n}"


# === MODULE === #

def test_module_without_auth_has_no_auth_logic():
    content = generate_only([_get_user_route()])

    assert "Authorization" not in content
    assert "X-API-Key" not in content
    assert "export async function login" not in content
    assert "function getBaseConfig(): RequestInit {\n  return {};\n}" in content


def test_module_layout():
    content = generate_typescript_client([_get_user_route()])

    assert content.startswith("/**\n * Auto-generated by tsroutes")
    assert content.endswith("// end of generated code\n")
    for name in TsRoutesRuntime.get_exported_names():
        assert f"export {'class' if name[0].isupper() else 'function'} {name}" in content
    assert content.index("export interface User {") < content.index("export interface Profile {")
    assert content.index("export interface Profile {") < content.index("export async function get_users_id")
    assert content.count("export interface User {") == 1


def test_generation_is_deterministic():
    auth = AuthenticationDescriptor(AuthenticationMethod.BEARER_OAUTH2, "/auth/token")
    routes = [_get_user_route(), RouteDescriptor("POST", "/users/:id", request_type=_user_write_request())]

    assert generate_only(routes, auth) == generate_only(routes, auth)


def test_duplicate_function_names_raise():
    routes = [RouteDescriptor("GET", "/a/b"), RouteDescriptor("GET", "/a_b")]

    with pytest.raises(GenerationError, match="get_a_b"):
        generate_only(routes)


def test_base_url_from_config():
    preamble = generate_runtime_preamble(None, TsRoutesConfig(base_url="https://api.example.com"))

    assert "let baseUrl: string = 'https://api.example.com';" in preamble
    assert "window.location.origin" not in preamble


def test_default_base_url_uses_window_origin():
    preamble = generate_runtime_preamble(None)

    assert "typeof window !== 'undefined' ? window.location.origin : ''" in preamble
    assert "export function setBaseUrl(url: string): void {" in preamble
    assert "export function setUnauthorizedHandler(handler: (() => void) | undefined): void {" in preamble


def test_fetch_json_handles_unauthorized_and_errors():
    preamble = generate_runtime_preamble(None)

    assert "async function fetchJson<T>(url: string, init: RequestInit = {}): Promise<T> {" in preamble
    assert "throw new RequestFailedError(url, 0," in preamble
    assert "if (response.status === 401) {" in preamble
    assert "unauthorizedHandler();" in preamble
    assert "if (response.status < 200 || response.status >= 400) {" in preamble
    assert "if (response.status === 204) {" in preamble


def test_bearer_auth_header_without_login():
    preamble = generate_runtime_preamble(AuthenticationDescriptor(AuthenticationMethod.BEARER))

    assert "headers['Authorization'] = `Bearer ${token}`;" in preamble
    assert "readStored('token')" in preamble
    assert "export async function login" not in preamble


def test_oauth2_login_helper():
    auth = AuthenticationDescriptor(AuthenticationMethod.BEARER_OAUTH2, "/auth/token")

    preamble = generate_runtime_preamble(auth)

    assert "export async function login(username: string, password: string): Promise<string> {" in preamble
    assert "const url = `${baseUrl}/auth/token`;" in preamble
    assert "'Content-Type': 'application/x-www-form-urlencoded'" in preamble
    assert "const token: string = data.access_token ?? data.token;" in preamble
    assert "localStorage.setItem('token', token);" in preamble


def test_basic_auth_stores_credentials():
    preamble = generate_runtime_preamble(AuthenticationDescriptor(AuthenticationMethod.BASIC, "/login"))

    assert "`Basic ${btoa(`${username}:${password}`)}`" in preamble
    assert "localStorage.setItem('username', username);" in preamble
    assert "localStorage.setItem('password', password);" in preamble


def test_api_key_header():
    preamble = generate_runtime_preamble(AuthenticationDescriptor(AuthenticationMethod.API_KEY, "https://auth.example.com/key"))

    assert "headers['X-API-Key'] = apiKey;" in preamble
    assert "const url = 'https://auth.example.com/key';" in preamble
    assert "localStorage.setItem('apiKey', token);" in preamble
