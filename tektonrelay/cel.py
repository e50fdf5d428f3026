"""Boolean guard expressions in a core subset of the Common Expression Language.

Expressions see one variable, ``event``: a map describing a
:class:`tektonrelay.domain.Event`. Supported: literals, field selection,
``!``, ``&&``, ``||``, comparisons, and the string methods ``startsWith``,
``endsWith``, ``contains``, ``matches`` plus ``size``.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from tektonrelay.domain import Event

BOOL, INT, DOUBLE, STRING, NULL, MAP, DYN = "bool", "int", "double", "string", "null_type", "map", "dyn"
_NUMERIC = {INT, DOUBLE}
_ORDERED = {INT, DOUBLE, STRING, BOOL, DYN}
_STRING_METHODS = {"startsWith", "endsWith", "contains", "matches"}

_Node = tuple[Callable[[Mapping[str, Any]], Any], str]


class CelError(ValueError):
    """Raised when an expression cannot be compiled or evaluated."""


class _CompileError(Exception):
    pass


class _EvalError(Exception):
    pass


_TOKEN_RE = re.compile(
    r"""\s*(?:
     (?P<float>\d+\.\d+(?:[eE][+-]?\d+)?)
    |(?P<int>\d+)
    |(?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
    |(?P<ident>[A-Za-z_]\w*)
    |(?P<op>==|!=|<=|>=|&&|\|\||[<>!.,()\-]))""",
    re.VERBOSE,
)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}


def _unescape(match: re.Match) -> str:
    if match.group(1) not in _ESCAPES:
        raise _CompileError(f"invalid escape sequence '\\{match.group(1)}'")
    return _ESCAPES[match.group(1)]


def _tokenize(text: str) -> list[tuple[str, str, int]]:
    tokens = []
    pos = 0
    while text[pos:].strip():
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            start = len(text) - len(text[pos:].lstrip())
            raise _CompileError(f"token recognition error at: '{text[start]}' (position {start})")
        tokens.append((match.lastgroup or "", match.group(match.lastgroup), match.start(match.lastgroup)))
        pos = match.end()
    tokens.append(("eof", "", len(text)))
    return tokens


def _type_name(value: Any) -> str:
    if value is None:
        return NULL
    if isinstance(value, bool):
        return BOOL
    if isinstance(value, int):
        return INT
    if isinstance(value, float):
        return DOUBLE
    if isinstance(value, str):
        return STRING
    return MAP if isinstance(value, Mapping) else type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _equals(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a == b
    return _type_name(a) == _type_name(b) and a == b


def _compatible(a: str, b: str) -> bool:
    return a == b or DYN in (a, b) or NULL in (a, b) or {a, b} <= _NUMERIC


def _no_overload(name: str, *types: str) -> _CompileError:
    return _CompileError(f"found no matching overload for '{name}' applied to '({', '.join(types)})'")


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return _equals(left, right)
    if op == "!=":
        return not _equals(left, right)
    if not (
        (_is_number(left) and _is_number(right))
        or (_type_name(left) == _type_name(right) and isinstance(left, (str, bool)))
    ):
        raise _EvalError(f"no such overload: {_type_name(left)} {op} {_type_name(right)}")
    return {"<": left < right, "<=": left <= right, ">": left > right, ">=": left >= right}[op]


def _logical(decisive: bool, left: Callable, right: Callable) -> Callable:
    def run(env: Mapping[str, Any]) -> bool:
        error = None
        for side in (left, right):
            try:
                value = side(env)
            except _EvalError as exc:
                error = error or exc
                continue
            if not isinstance(value, bool):
                error = error or _EvalError(f"no such overload: {_type_name(value)} in logical operator")
            elif value is decisive:
                return decisive
        if error is not None:
            raise error
        return not decisive

    return run


def _method(name: str, target: Any, args: list[Any]) -> Any:
    if name == "size":
        if not isinstance(target, (str, Mapping)):
            raise _EvalError(f"no such overload: size({_type_name(target)})")
        return len(target)
    arg = args[0]
    if not isinstance(target, str) or not isinstance(arg, str):
        raise _EvalError(f"no such overload: {_type_name(target)}.{name}({_type_name(arg)})")
    if name == "startsWith":
        return target.startswith(arg)
    if name == "endsWith":
        return target.endswith(arg)
    if name == "contains":
        return arg in target
    try:
        return re.search(arg, target) is not None
    except re.error as exc:
        raise _EvalError(f"invalid regular expression: {exc}") from None


def _select(value: Any, field: str) -> Any:
    if not isinstance(value, Mapping):
        raise _EvalError(f"type '{_type_name(value)}' does not support field selection")
    if field not in value:
        raise _EvalError(f"no such key: {field}")
    return value[field]


class _Parser:
    def __init__(self, text: str) -> None:
        self._tokens = _tokenize(text)
        self._pos = 0

    def parse(self) -> _Node:
        node = self._or()
        kind, value, pos = self._tokens[self._pos]
        if kind != "eof":
            raise _CompileError(f"unexpected token '{value}' at position {pos}")
        return node

    def _next(self) -> tuple[str, str, int]:
        tok = self._tokens[self._pos]
        if tok[0] != "eof":
            self._pos += 1
        return tok

    def _accept(self, *ops: str) -> str | None:
        kind, value, _ = self._tokens[self._pos]
        if kind == "op" and value in ops:
            self._pos += 1
            return value
        return None

    def _expect(self, op: str) -> None:
        if self._accept(op) is None:
            _, value, pos = self._tokens[self._pos]
            raise _CompileError(f"expected '{op}' but found '{value or 'end of expression'}' at position {pos}")

    def _or(self) -> _Node:
        return self._chain("||", self._and)

    def _and(self) -> _Node:
        return self._chain("&&", self._relation)

    def _chain(self, op: str, operand: Callable[[], _Node]) -> _Node:
        left, left_type = operand()
        while self._accept(op):
            right, right_type = operand()
            for found in (left_type, right_type):
                if found not in (BOOL, DYN):
                    raise _no_overload(f"_{op}_", found)
            left, left_type = _logical(op == "||", left, right), BOOL
        return left, left_type

    def _relation(self) -> _Node:
        left, left_type = self._unary()
        while op := self._accept("==", "!=", "<", "<=", ">", ">="):
            right, right_type = self._unary()
            ordered = op in ("==", "!=") or {left_type, right_type} <= _ORDERED
            if not _compatible(left_type, right_type) or not ordered:
                raise _no_overload(f"_{op}_", left_type, right_type)
            left, left_type = (lambda env, o=op, a=left, b=right: _compare(o, a(env), b(env))), BOOL
        return left, left_type

    def _unary(self) -> _Node:
        if self._accept("!"):
            operand, found = self._unary()
            if found not in (BOOL, DYN):
                raise _no_overload("!_", found)

            def negate(env: Mapping[str, Any]) -> bool:
                value = operand(env)
                if not isinstance(value, bool):
                    raise _EvalError(f"no such overload: !{_type_name(value)}")
                return not value

            return negate, BOOL
        if self._accept("-"):
            operand, found = self._unary()
            if found not in (INT, DOUBLE, DYN):
                raise _no_overload("-_", found)

            def minus(env: Mapping[str, Any]) -> Any:
                value = operand(env)
                if not _is_number(value):
                    raise _EvalError(f"no such overload: -{_type_name(value)}")
                return -value

            return minus, found
        return self._member()

    def _member(self) -> _Node:
        node, node_type = self._primary()
        while self._accept("."):
            kind, name, pos = self._next()
            if kind != "ident":
                raise _CompileError(f"expected field name at position {pos}")
            if self._accept("("):
                node, node_type = self._call(name, node, node_type, self._args())
            elif node_type in (MAP, DYN):
                node, node_type = (lambda env, t=node, f=name: _select(t(env), f)), DYN
            else:
                raise _CompileError(f"type '{node_type}' does not support field selection")
        return node, node_type

    def _args(self) -> list[_Node]:
        args: list[_Node] = []
        if self._accept(")"):
            return args
        while True:
            args.append(self._or())
            if self._accept(")"):
                return args
            self._expect(",")

    def _call(self, name: str, target: Callable, target_type: str, args: list[_Node]) -> _Node:
        arg_types = [found for _, found in args]
        if name == "size" and not args:
            if target_type not in (STRING, MAP, DYN):
                raise _no_overload("size", target_type)
            result = INT
        elif name in _STRING_METHODS and len(args) == 1:
            if target_type not in (STRING, DYN) or arg_types[0] not in (STRING, DYN):
                raise _no_overload(name, target_type, *arg_types)
            result = BOOL
        else:
            raise _no_overload(name, target_type, *arg_types)
        return (lambda env: _method(name, target(env), [arg(env) for arg, _ in args])), result

    def _primary(self) -> _Node:
        kind, value, pos = self._next()
        if kind == "int":
            return (lambda env, v=int(value): v), INT
        if kind == "float":
            return (lambda env, v=float(value): v), DOUBLE
        if kind == "string":
            text = re.sub(r"\\(.)", _unescape, value[1:-1])
            return (lambda env: text), STRING
        if kind == "ident":
            if value in ("true", "false"):
                return (lambda env, v=value == "true": v), BOOL
            if value == "null":
                return (lambda env: None), NULL
            if value == "size" and self._accept("("):
                args = self._args()
                if len(args) != 1:
                    raise _CompileError("undeclared reference to 'size'")
                return self._call("size", args[0][0], args[0][1], [])
            if value != "event":
                raise _CompileError(f"undeclared reference to '{value}'")
            return (lambda env: env["event"]), MAP
        if kind == "op" and value == "(":
            node = self._or()
            self._expect(")")
            return node
        if kind == "eof":
            raise _CompileError("unexpected end of expression")
        raise _CompileError(f"unexpected token '{value}' at position {pos}")


def _activation(event: Event) -> dict[str, Any]:
    repo = event.repo
    return {
        "event": {
            "Resource": str(event.resource),
            "State": str(event.state),
            "RunName": event.run_name,
            "RunID": event.run_id,
            "Namespace": event.namespace,
            "Context": event.context,
            "Description": event.description,
            "CommitSHA": event.commit_sha,
            "Provider": event.provider,
            "Repo": {
                "Owner": repo.owner,
                "Name": repo.name,
                "ID": repo.id,
                "Workspace": repo.workspace,
                "Project": repo.project,
                "Org": repo.org,
            },
            "IssueNumber": event.issue_number if event.issue_number is not None else 0,
            "PRNumber": event.pr_number if event.pr_number is not None else 0,
        }
    }


class CelProgram:
    """A compiled boolean expression over ``event``."""

    def __init__(self, root: Callable[[Mapping[str, Any]], Any], expr: str) -> None:
        self._root = root
        self.expr = expr

    def eval(self, event: Event) -> bool:
        """Evaluate against ``event``; raises CelError when evaluation fails."""
        try:
            result = self._root(_activation(event))
        except _EvalError as exc:
            raise CelError(f"cel: eval error: {exc}") from None
        if not isinstance(result, bool):
            raise CelError(f"cel: unexpected result type {_type_name(result)}")
        return result

    def __repr__(self) -> str:
        return f"CelProgram({self.expr!r})"


def compile_expression(expr: str) -> CelProgram:
    """Compile ``expr``; it must be valid and of boolean type."""
    if not expr:
        raise CelError("cel: empty expression")
    try:
        root, output = _Parser(expr).parse()
    except _CompileError as exc:
        raise CelError(f"cel: compile error: {exc}") from None
    if output != BOOL:
        raise CelError(f"cel: expression must return bool, got {output}")
    return CelProgram(root, expr)