"""
Route handler extraction for FastAPI modules using pure AST analysis.

This module extracts route signatures using only AST parsing without
executing or importing any code. Request and response shapes are resolved
from pydantic models declared in the same module.
"""

import ast
import re
from typing import Optional

from diff_qa_reporter.errors import UnparseableFileError
from diff_qa_reporter.models.endpoint import (
    FieldLocation,
    FieldSpec,
    HttpMethod,
    RouteSignature,
)

_PATH_PARAM_RE = re.compile(r"\{(\w+)(?::[^}]*)?\}")
_AUTH_DEPENDENCY_RE = re.compile(r"auth|current_user|token|session|require_|permission", re.I)


class PythonRouteExtractor:
    """
    Extract route signatures from FastAPI source text.

    Looks for decorators like `@router.patch("/path")`, honours
    `APIRouter(prefix=...)`, and reads body and response models from
    pydantic classes defined in the module.
    """

    # HTTP method names that FastAPI route decorators use
    HTTP_METHODS = {
        'get', 'post', 'put', 'patch', 'delete', 'options', 'head',
    }

    # Annotations that are plain query/path parameters, never a body
    SCALAR_TYPES = {
        'int', 'float', 'str', 'bool', 'bytes', 'UUID', 'date', 'datetime',
    }

    def extract(self, file_path: str, source: str) -> list[RouteSignature]:
        """
        Extract all route handlers from a module.

        Args:
            file_path: Repository-relative path of the module.
            source: Module source text.

        Returns:
            List of discovered route signatures in source order.

        Raises:
            UnparseableFileError: On syntax errors or when no route
                decorator is present.
        """
        try:
            tree = ast.parse(source, filename=file_path)
        except SyntaxError as e:
            raise UnparseableFileError(file_path, f"syntax error: {e.msg}") from e

        models = self._collect_models(tree)
        prefixes = self._collect_router_prefixes(tree)

        signatures: list[RouteSignature] = []
        for node in ast.walk(tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                signatures.extend(
                    self._extract_from_function(node, file_path, models, prefixes)
                )

        if not signatures:
            raise UnparseableFileError(file_path, "no route decorators found")

        signatures.sort(key=lambda s: s.line_number or 0)
        return signatures

    def _collect_models(self, tree: ast.Module) -> dict[str, list[FieldSpec]]:
        """
        Collect pydantic model fields by class name.

        A class counts as a model when one of its bases is `BaseModel` or
        another model already collected.
        """
        models: dict[str, list[FieldSpec]] = {}
        for node in tree.body:
            if not isinstance(node, ast.ClassDef):
                continue
            base_names = [self._name_of(b) for b in node.bases]
            if not any(b == "BaseModel" or b in models for b in base_names):
                continue

            fields: dict[str, FieldSpec] = {}
            for base in base_names:
                for inherited in models.get(base, []):
                    fields[inherited.name] = inherited

            for stmt in node.body:
                if not isinstance(stmt, ast.AnnAssign):
                    continue
                if not isinstance(stmt.target, ast.Name):
                    continue
                has_default = stmt.value is not None and not self._is_required_field(stmt.value)
                fields[stmt.target.id] = FieldSpec(
                    name=stmt.target.id,
                    type=ast.unparse(stmt.annotation),
                    required=not has_default,
                    has_default=has_default,
                )
            models[node.name] = list(fields.values())
        return models

    @staticmethod
    def _is_required_field(value: ast.expr) -> bool:
        """`Field(...)` and `Field(description=...)` without a default are required."""
        if not isinstance(value, ast.Call):
            return False
        if PythonRouteExtractor._name_of(value.func) != "Field":
            return False
        if value.args:
            first = value.args[0]
            return isinstance(first, ast.Constant) and first.value is Ellipsis
        return not any(k.arg in ("default", "default_factory") for k in value.keywords)

    def _collect_router_prefixes(self, tree: ast.Module) -> dict[str, str]:
        """Map router variable names to their `prefix=` argument."""
        prefixes: dict[str, str] = {}
        for node in ast.walk(tree):
            if not isinstance(node, ast.Assign) or not isinstance(node.value, ast.Call):
                continue
            if self._name_of(node.value.func) not in ("APIRouter", "FastAPI"):
                continue
            prefix = ""
            for keyword in node.value.keywords:
                if keyword.arg == "prefix" and isinstance(keyword.value, ast.Constant):
                    prefix = str(keyword.value.value)
            for target in node.targets:
                if isinstance(target, ast.Name):
                    prefixes[target.id] = prefix
        return prefixes

    def _extract_from_function(
        self,
        func_node: ast.AST,
        file_path: str,
        models: dict[str, list[FieldSpec]],
        prefixes: dict[str, str],
    ) -> list[RouteSignature]:
        """
        Extract route signatures from a function's decorators.

        Args:
            func_node: The function definition AST node.
            file_path: Path to the file containing the function.
            models: Pydantic model fields by class name.
            prefixes: Router prefixes by variable name.

        Returns:
            List of signatures found for this function.
        """
        signatures = []

        for decorator in func_node.decorator_list:
            route_info = self._parse_route_decorator(decorator)
            if route_info is None:
                continue
            method, obj_name, path = route_info
            full_path = prefixes.get(obj_name, "") + path

            request_fields, request_dynamic = self._request_shape(func_node, full_path, models)
            response_fields, response_dynamic = self._response_shape(
                func_node, decorator, models,
            )

            signatures.append(
                RouteSignature(
                    method=HttpMethod(method.upper()),
                    path=full_path,
                    source_file=file_path,
                    handler=func_node.name,
                    line_number=func_node.lineno,
                    request_fields=request_fields,
                    response_fields=response_fields,
                    auth=self._auth(func_node, decorator),
                    request_dynamic=request_dynamic,
                    response_dynamic=response_dynamic,
                )
            )

        return signatures

    def _parse_route_decorator(self, decorator: ast.expr) -> Optional[tuple[str, str, str]]:
        """
        Parse a route decorator to extract HTTP method, router and path.

        Args:
            decorator: The decorator AST node.

        Returns:
            Tuple of (method, router_variable, path) if this is a route
            decorator, None otherwise.
        """
        # Handle decorator calls like @router.get("/path")
        if not isinstance(decorator, ast.Call):
            return None
        if not isinstance(decorator.func, ast.Attribute):
            return None
        method_name = decorator.func.attr
        if method_name not in self.HTTP_METHODS:
            return None
        if not isinstance(decorator.func.value, ast.Name):
            return None

        path: Optional[str] = None
        if decorator.args and isinstance(decorator.args[0], ast.Constant):
            path = decorator.args[0].value
        for keyword in decorator.keywords:
            if keyword.arg == "path" and isinstance(keyword.value, ast.Constant):
                path = keyword.value.value
        if not isinstance(path, str):
            return None
        return (method_name, decorator.func.value.id, path)

    def _request_shape(
        self,
        func_node: ast.AST,
        path: str,
        models: dict[str, list[FieldSpec]],
    ) -> tuple[list[FieldSpec], bool]:
        """Return (fields, dynamic) for a handler's request."""
        path_params = set(_PATH_PARAM_RE.findall(path))
        fields: list[FieldSpec] = []
        dynamic = False

        args = func_node.args
        positional = args.posonlyargs + args.args
        defaults: list[Optional[ast.expr]] = [None] * (len(positional) - len(args.defaults))
        defaults += list(args.defaults)
        params = list(zip(positional, defaults)) + list(zip(args.kwonlyargs, args.kw_defaults))

        for arg, default in params:
            if arg.arg in path_params or arg.arg in ("self", "cls"):
                continue
            if default is not None and self._is_depends(default):
                continue
            annotation = self._name_of(arg.annotation) if arg.annotation is not None else ""

            if annotation in ("Request",):
                if self._reads_raw_body(func_node, arg.arg):
                    dynamic = True
                continue
            if annotation in ("Response", "BackgroundTasks", "Session", "AsyncSession"):
                continue
            if annotation in models:
                fields.extend(models[annotation])
                continue
            if annotation in self.SCALAR_TYPES or annotation in ("Optional", "list", "List"):
                has_default = default is not None
                fields.append(
                    FieldSpec(
                        name=arg.arg,
                        type=ast.unparse(arg.annotation),
                        required=not has_default,
                        has_default=has_default,
                        location=FieldLocation.QUERY,
                    )
                )
                continue
            # Annotated with a class we cannot see
            dynamic = True

        return fields, dynamic

    @staticmethod
    def _reads_raw_body(func_node: ast.AST, request_name: str) -> bool:
        for node in ast.walk(func_node):
            if (
                isinstance(node, ast.Call)
                and isinstance(node.func, ast.Attribute)
                and node.func.attr in ("json", "body", "form")
                and isinstance(node.func.value, ast.Name)
                and node.func.value.id == request_name
            ):
                return True
        return False

    def _response_shape(
        self,
        func_node: ast.AST,
        decorator: ast.Call,
        models: dict[str, list[FieldSpec]],
    ) -> tuple[list[FieldSpec], bool]:
        """Return (fields, dynamic) for a handler's success response."""
        model_name: Optional[str] = None
        for keyword in decorator.keywords:
            if keyword.arg == "response_model":
                model_name = self._name_of(keyword.value)
        if model_name is None and func_node.returns is not None:
            model_name = self._name_of(func_node.returns)

        if model_name:
            if model_name in models:
                return list(models[model_name]), False
            if model_name not in ("None", "dict", "Dict", "Any"):
                return [], True

        fields: dict[str, FieldSpec] = {}
        dynamic = False
        for node in ast.walk(func_node):
            if not isinstance(node, ast.Return) or node.value is None:
                continue
            if isinstance(node.value, ast.Dict):
                for key in node.value.keys:
                    if isinstance(key, ast.Constant) and isinstance(key.value, str):
                        fields.setdefault(key.value, FieldSpec(name=key.value))
                    else:
                        dynamic = True
            elif not (isinstance(node.value, ast.Constant) and node.value.value is None):
                dynamic = True
        return list(fields.values()), dynamic

    def _auth(self, func_node: ast.AST, decorator: ast.Call) -> Optional[str]:
        """Describe auth dependencies declared on the route."""
        found: set[str] = set()
        candidates: list[ast.expr] = []
        candidates.extend(d for d in func_node.args.defaults)
        candidates.extend(d for d in func_node.args.kw_defaults if d is not None)
        for keyword in decorator.keywords:
            if keyword.arg == "dependencies" and isinstance(keyword.value, (ast.List, ast.Tuple)):
                candidates.extend(keyword.value.elts)

        for candidate in candidates:
            if not self._is_depends(candidate) or not candidate.args:
                continue
            target = candidate.args[0]
            name = self._name_of(target.func if isinstance(target, ast.Call) else target)
            if name and _AUTH_DEPENDENCY_RE.search(name):
                if isinstance(target, ast.Call) and target.args:
                    arg = target.args[0]
                    if isinstance(arg, ast.Constant) and isinstance(arg.value, str):
                        found.add(f"role:{arg.value}")
                        continue
                found.add(f"depends:{name}")

        if not found:
            return None
        return "; ".join(sorted(found))

    @staticmethod
    def _is_depends(node: ast.expr) -> bool:
        return isinstance(node, ast.Call) and PythonRouteExtractor._name_of(node.func) in (
            "Depends", "Security",
        )

    @staticmethod
    def _name_of(node: Optional[ast.expr]) -> str:
        """Best-effort simple name of a Name, Attribute or subscripted annotation."""
        if node is None:
            return ""
        if isinstance(node, ast.Name):
            return node.id
        if isinstance(node, ast.Attribute):
            return node.attr
        if isinstance(node, ast.Subscript):
            return PythonRouteExtractor._name_of(node.value)
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            return node.value
        return ""
