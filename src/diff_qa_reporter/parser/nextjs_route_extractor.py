"""
Route handler extraction for Next.js App Router modules.

This module reads `route.ts`-style files using regular expressions and a
bracket scanner only. It never executes or imports the analyzed code.
"""

import re
from pathlib import PurePosixPath
from typing import Optional

from diff_qa_reporter.errors import UnparseableFileError
from diff_qa_reporter.models.endpoint import (
    FieldLocation,
    FieldSpec,
    HttpMethod,
    RouteSignature,
)
from diff_qa_reporter.parser.source_scanner import (
    ScanError,
    find_body_start,
    find_closing,
    find_opening,
    line_of,
    skip_string,
    split_top_level,
    strip_comments,
)

ROUTE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx", ".mjs")

_METHODS = "|".join(m.value for m in HttpMethod)

_EXPORT_FUNCTION_RE = re.compile(
    rf"export\s+(?:async\s+)?function\s+({_METHODS})\b\s*(?:<[^>(]*>)?\s*\("
)
_EXPORT_CONST_RE = re.compile(rf"export\s+const\s+({_METHODS})\b\s*(?::[^=]+)?=")
_EXPORT_LIST_RE = re.compile(r"export\s*\{([^}]*)\}")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][\w$]*")
_RESPONSE_RE = re.compile(r"\b(?:NextResponse|Response)\s*\.\s*json\s*\(")
_SEARCH_PARAM_RE = re.compile(r"searchParams\s*\.\s*get\s*\(\s*['\"]([\w.-]+)['\"]")
_STATUS_RE = re.compile(r"\bstatus\s*:\s*(\d{3})")
_SCHEMA_CALL_TAIL_RE = re.compile(
    r"([A-Za-z_$][\w$]*)\s*\.\s*(?:safeParse|parse)(?:Async)?\s*\(\s*$"
)
_ZOD_TYPE_RE = re.compile(r"\bz\s*\.\s*(?:coerce\s*\.\s*)?(\w+)")
_ZOD_OPTIONAL_RE = re.compile(r"\.\s*(?:optional|nullish)\s*\(")
_ZOD_DEFAULT_RE = re.compile(r"\.\s*default\s*\(")
_CHAIN_CALL_RE = re.compile(r"\s*\.\s*(\w+)\s*\(")
_OBJECT_KEY_RE = re.compile(r"""^(?:['"]([^'"]+)['"]|([A-Za-z_$][\w$]*))\s*(?::|$)""")

_AUTH_CALLS = [
    (re.compile(r"\bgetServerSession\s*\("), "session"),
    (re.compile(r"\bauth\s*\(\s*\)"), "session"),
    (re.compile(r"\brequireAuth\s*\("), "session"),
    (re.compile(r"\bgetCurrentUser\s*\("), "session"),
    (re.compile(r"\bwithAuth\s*\("), "session"),
]
_AUTH_ROLE_RE = re.compile(
    r"\b(?:requireRole|hasRole|withRole)\s*\(\s*(?:[^'\"(),]*,\s*)?['\"]([\w:.-]+)['\"]"
)
_AUTH_PERMISSION_RE = re.compile(
    r"\b(?:requirePermission|hasPermission)\s*\(\s*(?:[^'\"(),]*,\s*)?['\"]([\w:.-]+)['\"]"
)

_MAX_SCHEMA_DEPTH = 5


def is_route_file(path: str) -> bool:
    """Check whether a path looks like an App Router route module."""
    pure = PurePosixPath(path)
    return pure.stem == "route" and pure.suffix in ROUTE_SUFFIXES


def route_path_from_file(file_path: str) -> str:
    """
    Derive the URL pattern served by a route module.

    `src/app/(admin)/api/packages/[id]/route.ts` becomes
    `/api/packages/[id]`: everything up to the `app` directory, route
    groups and parallel-route slots are dropped.
    """
    parts = list(PurePosixPath(file_path).parts[:-1])
    if "app" in parts:
        parts = parts[parts.index("app") + 1:]
    segments = [
        p for p in parts
        if not (p.startswith("(") and p.endswith(")")) and not p.startswith("@")
    ]
    return "/" + "/".join(segments)


def _outer_chain(expr: str) -> str:
    """
    Empty every bracketed argument of an expression.

    `z.object({ a: z.string().optional() }).default({})` becomes
    `z.object().default()`, so modifiers of nested schemas are not
    mistaken for modifiers of the field itself.
    """
    out: list[str] = []
    i = 0
    while i < len(expr):
        ch = expr[i]
        if ch in "'\"`":
            end = skip_string(expr, i)
            out.append(expr[i:end])
            i = end
        elif ch in "({[":
            close = find_closing(expr, i)
            out.append(ch + expr[close])
            i = close + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


class _Handler:
    """Raw pieces of one exported handler."""

    def __init__(
        self,
        method: str,
        name: str,
        params: str,
        body: str,
        offset: int,
        wrapper: str = "",
    ) -> None:
        self.method = method
        self.name = name
        self.params = params
        self.body = body
        self.offset = offset
        self.wrapper = wrapper


class NextRouteExtractor:
    """
    Extract route signatures from Next.js App Router source text.

    Request fields come from zod schemas applied to the JSON body or from
    destructuring of the body; response fields from object literals passed
    to `NextResponse.json`.
    """

    def extract(self, file_path: str, source: str) -> list[RouteSignature]:
        """
        Extract all exported handlers from a route module.

        Args:
            file_path: Repository-relative path of the module.
            source: Module source text.

        Returns:
            One RouteSignature per exported HTTP method, in source order.

        Raises:
            UnparseableFileError: If the source is unbalanced or exports
                no handler.
        """
        code = strip_comments(source)
        path = route_path_from_file(file_path)

        try:
            handlers = self._find_handlers(code)
        except ScanError as e:
            raise UnparseableFileError(file_path, str(e)) from e

        if not handlers:
            raise UnparseableFileError(file_path, "no exported route handlers found")

        signatures: list[RouteSignature] = []
        for handler in sorted(handlers, key=lambda h: h.offset):
            try:
                request_fields, request_dynamic = self._request_shape(code, handler)
                response_fields, response_dynamic = self._response_shape(handler.body)
            except ScanError as e:
                raise UnparseableFileError(file_path, str(e)) from e
            signatures.append(
                RouteSignature(
                    method=HttpMethod(handler.method),
                    path=path,
                    source_file=file_path,
                    handler=handler.name,
                    line_number=line_of(code, handler.offset),
                    request_fields=request_fields,
                    response_fields=response_fields,
                    auth=self._auth(handler),
                    request_dynamic=request_dynamic,
                    response_dynamic=response_dynamic,
                )
            )
        return signatures

    # ------------------------------------------------------------------
    # Handler discovery
    # ------------------------------------------------------------------

    def _find_handlers(self, code: str) -> list[_Handler]:
        handlers: list[_Handler] = []

        for match in _EXPORT_FUNCTION_RE.finditer(code):
            params, body = self._function_parts(code, match.end() - 1)
            handlers.append(
                _Handler(match.group(1), match.group(1), params, body, match.start())
            )

        for match in _EXPORT_CONST_RE.finditer(code):
            handler = self._const_handler(code, match.group(1), match.end(), match.start())
            if handler is not None:
                handlers.append(handler)

        for match in _EXPORT_LIST_RE.finditer(code):
            for item in split_top_level(match.group(1)):
                alias = re.fullmatch(rf"([A-Za-z_$][\w$]*)\s+as\s+({_METHODS})", item)
                if alias is None:
                    continue
                resolved = self._resolve_function(code, alias.group(1))
                if resolved is None:
                    continue
                params, body, offset = resolved
                handlers.append(
                    _Handler(alias.group(2), alias.group(1), params, body, offset)
                )

        return handlers

    def _function_parts(self, code: str, open_paren: int) -> tuple[str, str]:
        """Return (params, body) of a function whose `(` is at open_paren."""
        close_paren = find_closing(code, open_paren)
        params = code[open_paren + 1:close_paren]
        body_start = find_body_start(code, close_paren + 1)
        if body_start is None:
            return params, ""
        body_end = find_closing(code, body_start)
        return params, code[body_start + 1:body_end]

    def _arrow_parts(self, code: str, start: int, end: int) -> Optional[tuple[str, str, int]]:
        """Find the first arrow function in code[start:end]; return (params, body, offset)."""
        i = start
        while i < end:
            if code[i] == "(":
                close = find_closing(code, i)
                arrow = re.match(r"\s*(?::[^=;{]*)?=>\s*", code[close + 1:])
                if arrow:
                    body_from = close + 1 + arrow.end()
                    if body_from < len(code) and code[body_from] == "{":
                        body_end = find_closing(code, body_from)
                        return code[i + 1:close], code[body_from + 1:body_end], i
                    # Expression-bodied arrow: take the rest of the statement
                    stmt_end = code.find(";", body_from)
                    stmt_end = end if stmt_end == -1 else stmt_end
                    return code[i + 1:close], code[body_from:stmt_end], i
            i += 1
        return None

    def _statement_end(self, code: str, start: int) -> int:
        """End offset of the expression statement beginning at start."""
        i = start
        while i < len(code):
            ch = code[i]
            if ch in "({[":
                i = find_closing(code, i) + 1
                continue
            if ch in "'\"`":
                i = skip_string(code, i)
                continue
            if ch == ";" or code.startswith("\nexport", i):
                return i
            i += 1
        return len(code)

    def _const_handler(
        self,
        code: str,
        method: str,
        expr_start: int,
        offset: int,
    ) -> Optional[_Handler]:
        expr_end = self._statement_end(code, expr_start)
        expr = code[expr_start:expr_end]
        wrapper_match = re.match(r"\s*([A-Za-z_$][\w$]*)\s*\(", expr)
        wrapper = expr[:wrapper_match.end()] if wrapper_match else ""
        # Wrapper call arguments such as withRole("admin", handler)
        if wrapper_match:
            open_paren = expr_start + wrapper_match.end() - 1
            wrapper = code[expr_start:find_closing(code, open_paren) + 1]

        arrow = self._arrow_parts(code, expr_start, expr_end)
        if arrow is not None:
            params, body, _ = arrow
            return _Handler(method, method, params, body, offset, wrapper)

        function_kw = re.search(r"function\s*\w*\s*\(", expr)
        if function_kw:
            params, body = self._function_parts(code, expr_start + function_kw.end() - 1)
            return _Handler(method, method, params, body, offset, wrapper)

        # Reference to a named function, possibly wrapped: withAuth(handler)
        for name in reversed(_IDENTIFIER_RE.findall(expr)):
            resolved = self._resolve_function(code, name)
            if resolved is not None:
                params, body, _ = resolved
                return _Handler(method, name, params, body, offset, wrapper)
        return None

    def _resolve_function(self, code: str, name: str) -> Optional[tuple[str, str, int]]:
        """Locate a function declared as `function name(` or `const name = (...) =>`."""
        declared = re.search(rf"(?:async\s+)?function\s+{re.escape(name)}\s*\(", code)
        if declared:
            params, body = self._function_parts(code, declared.end() - 1)
            return params, body, declared.start()
        assigned = re.search(rf"(?:const|let)\s+{re.escape(name)}\s*(?::[^=]+)?=", code)
        if assigned:
            end = self._statement_end(code, assigned.end())
            return self._arrow_parts(code, assigned.end(), end)
        return None

    # ------------------------------------------------------------------
    # Request shape
    # ------------------------------------------------------------------

    @staticmethod
    def _request_param(params: str) -> Optional[str]:
        items = split_top_level(params)
        if not items:
            return None
        match = _IDENTIFIER_RE.match(items[0])
        return match.group(0) if match else None

    def _request_shape(self, code: str, handler: _Handler) -> tuple[list[FieldSpec], bool]:
        """Return (fields, dynamic) for the handler's request."""
        body = handler.body
        fields: dict[str, FieldSpec] = {}
        dynamic = False

        param = self._request_param(handler.params)
        if param:
            read_re = re.compile(rf"await\s+{re.escape(param)}\s*\.\s*json\s*\(\s*\)")
            for read in read_re.finditer(body):
                resolved = self._fields_for_body_read(code, body, read.start())
                if resolved is None:
                    dynamic = True
                    continue
                for spec in resolved:
                    fields.setdefault(spec.name, spec)

        for match in _SEARCH_PARAM_RE.finditer(body):
            name = match.group(1)
            fields.setdefault(
                name,
                FieldSpec(
                    name=name,
                    type="string",
                    required=False,
                    location=FieldLocation.QUERY,
                ),
            )

        return list(fields.values()), dynamic

    def _fields_for_body_read(
        self,
        code: str,
        body: str,
        read_start: int,
    ) -> Optional[list[FieldSpec]]:
        """Resolve the fields of one `await request.json()` read, None if dynamic."""
        prefix = body[:read_start]

        # Schema.parse(await request.json())
        inline = _SCHEMA_CALL_TAIL_RE.search(prefix)
        if inline:
            return self._schema_fields(code, inline.group(1))

        stripped = prefix.rstrip()
        if not stripped.endswith("="):
            return None
        lhs = stripped[:-1].rstrip()
        lhs = re.sub(r":\s*[\w.$<>\[\]]+$", "", lhs).rstrip()

        # const { a, b = 1 } = await request.json()
        if lhs.endswith("}"):
            open_brace = find_opening(lhs, len(lhs) - 1)
            if re.search(r"(?:const|let|var)\s*$", lhs[:open_brace]):
                return self._destructured_fields(lhs[open_brace + 1:-1])
            return None

        # const body = await request.json(), then validated or destructured
        var = re.search(r"(?:const|let|var)\s+([A-Za-z_$][\w$]*)$", lhs)
        if var is None:
            return None
        name = re.escape(var.group(1))
        rest = body[read_start:]

        validated = re.search(
            rf"([A-Za-z_$][\w$]*)\s*\.\s*(?:safeParse|parse)(?:Async)?\s*\(\s*{name}\s*\)",
            rest,
        )
        if validated:
            return self._schema_fields(code, validated.group(1))

        destructured = re.search(rf"(?:const|let|var)\s*\{{([^}}]*)\}}\s*=\s*{name}\b", rest)
        if destructured:
            return self._destructured_fields(destructured.group(1))

        return None

    @staticmethod
    def _destructured_fields(pattern: str) -> list[FieldSpec]:
        fields: list[FieldSpec] = []
        for item in split_top_level(pattern):
            if item.startswith("..."):
                continue
            name_match = _IDENTIFIER_RE.match(item)
            if name_match is None:
                continue
            # `a: alias = 1` and `a = 1` both carry a default after the key
            has_default = "=" in item.replace("=>", "")
            fields.append(
                FieldSpec(
                    name=name_match.group(0),
                    required=not has_default,
                    has_default=has_default,
                )
            )
        return fields

    def _schema_fields(
        self,
        code: str,
        schema_name: str,
        depth: int = 0,
    ) -> Optional[list[FieldSpec]]:
        """Resolve a zod object schema declared in the module, None if unresolvable."""
        if depth > _MAX_SCHEMA_DEPTH:
            return None
        decl = re.search(rf"(?:const|let)\s+{re.escape(schema_name)}\s*(?::[^=]+)?=\s*", code)
        if decl is None:
            return None

        pos = decl.end()
        object_call = re.match(r"z\s*\.\s*object\s*\(", code[pos:])
        if object_call:
            open_paren = pos + object_call.end() - 1
            close_paren = find_closing(code, open_paren)
            fields = self._zod_object_fields(code[open_paren + 1:close_paren])
            if fields is None:
                return None
            pos = close_paren + 1
        else:
            base = re.match(r"([A-Za-z_$][\w$]*)", code[pos:])
            if base is None:
                return None
            fields = self._schema_fields(code, base.group(1), depth + 1)
            if fields is None:
                return None
            pos += base.end()

        return self._apply_chain(code, pos, fields, depth)

    def _zod_object_fields(self, argument: str) -> Optional[list[FieldSpec]]:
        argument = argument.strip()
        if not argument.startswith("{"):
            return None
        inner = argument[1:find_closing(argument, 0)]
        fields: list[FieldSpec] = []
        for entry in split_top_level(inner):
            if entry.startswith("..."):
                return None
            key = _OBJECT_KEY_RE.match(entry)
            if key is None:
                continue
            name = key.group(1) or key.group(2)
            expr = entry[key.end():].strip()
            fields.append(self._zod_field(name, expr))
        return fields

    @staticmethod
    def _zod_field(name: str, expr: str) -> FieldSpec:
        type_match = _ZOD_TYPE_RE.search(expr)
        if type_match:
            field_type = type_match.group(1)
        else:
            ref = _IDENTIFIER_RE.match(expr)
            field_type = ref.group(0) if ref else "unknown"
        chain = _outer_chain(expr)
        has_default = bool(_ZOD_DEFAULT_RE.search(chain))
        optional = bool(_ZOD_OPTIONAL_RE.search(chain))
        return FieldSpec(
            name=name,
            type=field_type,
            required=not (optional or has_default),
            has_default=has_default,
        )

    def _apply_chain(
        self,
        code: str,
        pos: int,
        fields: list[FieldSpec],
        depth: int,
    ) -> Optional[list[FieldSpec]]:
        """Apply `.partial()`, `.extend({...})` and friends following a schema."""
        while True:
            call = _CHAIN_CALL_RE.match(code, pos)
            if call is None:
                return fields
            open_paren = call.end() - 1
            close_paren = find_closing(code, open_paren)
            argument = code[open_paren + 1:close_paren].strip()
            method = call.group(1)

            if method == "partial":
                fields = [f.model_copy(update={"required": False}) for f in fields]
            elif method == "required":
                fields = [f.model_copy(update={"required": True}) for f in fields]
            elif method == "extend":
                extra = self._zod_object_fields(argument)
                if extra is None:
                    return None
                names = {f.name for f in extra}
                fields = [f for f in fields if f.name not in names] + extra
            elif method == "merge":
                other = self._schema_fields(code, argument, depth + 1)
                if other is None:
                    return None
                names = {f.name for f in other}
                fields = [f for f in fields if f.name not in names] + other
            elif method in ("omit", "pick"):
                keys = set(re.findall(r"([A-Za-z_$][\w$]*)\s*:", argument))
                if method == "omit":
                    fields = [f for f in fields if f.name not in keys]
                else:
                    fields = [f for f in fields if f.name in keys]
            elif method in ("parse", "safeParse", "parseAsync", "safeParseAsync"):
                return fields
            # strict(), passthrough(), refine(...) and similar keep the shape
            pos = close_paren + 1

    # ------------------------------------------------------------------
    # Response shape
    # ------------------------------------------------------------------

    def _response_shape(self, body: str) -> tuple[list[FieldSpec], bool]:
        """Return (fields, dynamic) from the success responses in a handler."""
        fields: dict[str, FieldSpec] = {}
        dynamic = False

        for match in _RESPONSE_RE.finditer(body):
            open_paren = match.end() - 1
            close_paren = find_closing(body, open_paren)
            args = split_top_level(body[open_paren + 1:close_paren])
            if not args:
                continue
            if len(args) > 1:
                status = _STATUS_RE.search(args[1])
                if status and int(status.group(1)) >= 400:
                    continue

            payload = args[0]
            if not payload.startswith("{"):
                dynamic = True
                continue

            inner = payload[1:find_closing(payload, 0)]
            for entry in split_top_level(inner):
                if entry.startswith("..."):
                    dynamic = True
                    continue
                key = _OBJECT_KEY_RE.match(entry)
                if key is None:
                    continue
                name = key.group(1) or key.group(2)
                value = entry[key.end():].strip()
                fields.setdefault(name, FieldSpec(name=name, type=_literal_type(value)))

        return list(fields.values()), dynamic

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    @staticmethod
    def _auth(handler: _Handler) -> Optional[str]:
        text = handler.wrapper + "\n" + handler.body
        found: set[str] = set()
        for pattern, label in _AUTH_CALLS:
            if pattern.search(text):
                found.add(label)
        for role in _AUTH_ROLE_RE.findall(text):
            found.add(f"role:{role}")
        for permission in _AUTH_PERMISSION_RE.findall(text):
            found.add(f"permission:{permission}")
        if not found:
            return None
        return "; ".join(sorted(found))


def _literal_type(value: str) -> str:
    """Infer a JSON type from a literal expression, `unknown` otherwise."""
    if not value:
        return "unknown"
    if value[0] in "'\"`":
        return "string"
    if value in ("true", "false"):
        return "boolean"
    if value == "null":
        return "null"
    if re.fullmatch(r"-?\d+(?:\.\d+)?", value):
        return "number"
    if value.startswith("["):
        return "array"
    if value.startswith("{"):
        return "object"
    return "unknown"
