"""
tsroutes constants for the generated TypeScript runtime
"""

class TsRoutesRuntime:
    """Names of the runtime symbols emitted into every generated module"""

    BASE_URL_VAR = "baseUrl"
    UNAUTHORIZED_HANDLER_VAR = "unauthorizedHandler"
    SET_BASE_URL_FN = "setBaseUrl"
    SET_UNAUTHORIZED_HANDLER_FN = "setUnauthorizedHandler"
    GET_BASE_CONFIG_FN = "getBaseConfig"
    FETCH_JSON_FN = "fetchJson"
    LOGIN_FN = "login"
    REQUEST_ERROR_CLASS = "RequestFailedError"

    @classmethod
    def get_exported_names(cls) -> list[str]:
        """Runtime names visible to code importing the generated module"""
        return [cls.SET_BASE_URL_FN, cls.SET_UNAUTHORIZED_HANDLER_FN, cls.REQUEST_ERROR_CLASS]


class StorageKeys:
    """localStorage keys the generated auth helpers read and write"""

    TOKEN = "token"
    USERNAME = "username"
    PASSWORD = "password"
    API_KEY = "apiKey"


class GenerationPaths:
    """Default file locations"""

    CONFIG_FILE = "tsroutes.config.json"
    DEFAULT_OUTPUT = "client.ts"


OMIT_URL_ENV_VAR = "TSROUTES_GEN_OMIT_URL"

SUPPORTED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

# fetch() rejects a body on these
NO_BODY_METHODS = frozenset({"GET", "HEAD"})

TS_RESERVED_WORDS = frozenset({
    "break", "case", "catch", "class", "const", "continue", "debugger", "default",
    "delete", "do", "else", "enum", "export", "extends", "false", "finally", "for",
    "function", "if", "import", "in", "instanceof", "new", "null", "return", "super",
    "switch", "this", "throw", "true", "try", "typeof", "var", "void", "while", "with",
    "let", "static", "yield", "await", "implements", "interface", "package", "private",
    "protected", "public", "arguments", "eval",
})

# Identifiers a generated route function reads; a parameter may not shadow them
GENERATED_IDENTIFIERS = frozenset({
    "url", "query", "config", "readStored", "encodeURIComponent", "String", "JSON",
    TsRoutesRuntime.BASE_URL_VAR,
    TsRoutesRuntime.UNAUTHORIZED_HANDLER_VAR,
    TsRoutesRuntime.SET_BASE_URL_FN,
    TsRoutesRuntime.SET_UNAUTHORIZED_HANDLER_FN,
    TsRoutesRuntime.GET_BASE_CONFIG_FN,
    TsRoutesRuntime.FETCH_JSON_FN,
    TsRoutesRuntime.LOGIN_FN,
    TsRoutesRuntime.REQUEST_ERROR_CLASS,
})

GENERATED_FILE_HEADER = """/**
 * Auto-generated by tsroutes from server route descriptors - DO NOT EDIT
 * Changes will be overwritten on regeneration.
 */
"""
