"""
Traversal script interpreter for Gremlin.

Scripts such as ``g.V().hasLabel('person').out('knows').values('name')``
are tokenized and parsed into a chain of whitelisted steps, then replayed
against a live gremlinpython traversal source. Nothing is handed to a
host-language evaluator: only the steps, predicates and tokens listed in
this module can be reached.

Supported grammar:

    script    := SOURCE ('.' step)+
    step      := NAME '(' [arg (',' arg)*] ')'
    arg       := literal | anonymous | qualified | call | NAME
    anonymous := '__' ('.' step)+ | STEP_CALL ('.' step)*
    qualified := TOKEN_CLASS '.' NAME ['(' args ')']      # T.label, P.gt(3)
    call      := PREDICATE '(' args ')'                    # gt(3), within('a')
    literal   := string | number | true | false | null | '[' args ']'

Bare identifiers resolve to query parameters first, then to the common
Gremlin tokens (label, id, desc, local, keys, ...).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from gremlin_python.process.graph_traversal import __
from gremlin_python.process.traversal import Column, Order, P, Pop, Scope, T, TextP

from puppygraph_bridge.graph.exceptions import (
    UnsafeQueryError,
    UnsupportedQueryShapeError,
)
from puppygraph_bridge.graph.safety import find_unsafe_token

SOURCE_STEPS = frozenset({"V", "E", "inject"})

# Read-only steps; mutating steps (addV, addE, property, drop, ...) are absent.
STEP_WHITELIST = frozenset(
    {
        "V", "E",
        "aggregate", "and", "as", "barrier", "both", "bothE", "bothV", "by",
        "cap", "choose", "coalesce", "coin", "constant", "count", "cyclicPath",
        "dedup", "elementMap", "emit", "filter", "flatMap", "fold", "from",
        "group", "groupCount", "has", "hasId", "hasKey", "hasLabel", "hasNot",
        "hasValue", "id", "identity", "in", "inE", "inV", "index", "inject",
        "is", "key",
        "label", "limit", "local", "loops", "map", "match", "math", "max",
        "mean", "min", "not", "optional", "or", "order", "otherV", "out",
        "outE", "outV", "path", "project", "properties", "propertyMap",
        "range", "repeat", "sample", "select", "simplePath", "skip",
        "sum", "tail", "timeLimit", "times", "to", "unfold", "union", "until",
        "value", "valueMap", "values", "where",
    }
)

TERMINAL_STEPS = frozenset({"toList", "next", "iterate"})

PREDICATES = frozenset(
    {
        "eq", "neq", "lt", "lte", "gt", "gte", "inside", "outside",
        "between", "within", "without",
        "containing", "notContaining", "startingWith", "notStartingWith",
        "endingWith", "notEndingWith", "regex", "notRegex",
    }
)

TOKEN_CLASSES: dict[str, Any] = {
    "T": T,
    "P": P,
    "TextP": TextP,
    "Order": Order,
    "Scope": Scope,
    "Column": Column,
    "Pop": Pop,
}

BARE_TOKENS: dict[str, Any] = {
    "label": T.label,
    "id": T.id,
    "key": T.key,
    "value": T.value,
    "asc": Order.asc,
    "desc": Order.desc,
    "shuffle": Order.shuffle,
    "local": Scope.local,
    "keys": Column.keys,
    "values": Column.values,
    "all": Pop.all_,
}

_TEXT_PREDICATES = frozenset(
    {
        "containing", "notContaining", "startingWith", "notStartingWith",
        "endingWith", "notEndingWith", "regex", "notRegex",
    }
)

# gremlinpython suffixes step names that collide with Python keywords/builtins
_PYTHON_RESERVED = {
    "all": "all_",
    "and": "and_",
    "as": "as_",
    "filter": "filter_",
    "from": "from_",
    "global": "global_",
    "id": "id_",
    "in": "in_",
    "is": "is_",
    "map": "map_",
    "max": "max_",
    "min": "min_",
    "not": "not_",
    "or": "or_",
    "range": "range_",
    "sum": "sum_",
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    | (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?[lLdDfF]?)
    | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<punct>[.(),\[\]])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f"}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class ListLiteral:
    items: tuple[Any, ...]


@dataclass(frozen=True)
class Binding:
    """Bare identifier, resolved against parameters then Gremlin tokens."""

    name: str


@dataclass(frozen=True)
class TokenRef:
    owner: str
    attr: str


@dataclass(frozen=True)
class TokenCall:
    """Predicate call; ``owner`` is None for bare ``gt(3)`` style calls."""

    owner: str | None
    method: str
    args: tuple[Any, ...]


@dataclass(frozen=True)
class Step:
    name: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Anonymous:
    steps: tuple[Step, ...]


@dataclass(frozen=True)
class ParsedTraversal:
    """A validated traversal script, ready to bind against a source.

    Attributes:
        source: Traversal source name the script starts with (usually ``g``)
        steps: Whitelisted step chain, source step first
        take: Result cap requested by a trailing ``next(n)``
        terminal: Terminal step the script ended with, ``toList`` when absent
    """

    source: str
    steps: tuple[Step, ...]
    take: int | None = None
    terminal: str = "toList"

    def bind(self, g: Any, parameters: dict[str, Any] | None = None) -> Any:
        """Replay the step chain on a traversal source.

        Args:
            g: gremlinpython GraphTraversalSource
            parameters: Values for bare identifiers used in the script

        Returns:
            The unevaluated gremlinpython traversal

        Raises:
            UnsupportedQueryShapeError: If an identifier or step cannot be resolved
        """
        return _apply_steps(g, self.steps, parameters or {})

    def drain(self, traversal: Any) -> list[Any]:
        """Run a bound traversal to completion (blocking).

        ``next(n)`` fetches at most n results and ``iterate()`` discards
        them; otherwise the whole traversal is drained with to_list().
        """
        if self.terminal == "iterate":
            traversal.iterate()
            return []
        if self.take is not None:
            return list(traversal.next(self.take))
        return list(traversal.to_list())

    def evaluate(self, g: Any, parameters: dict[str, Any] | None = None) -> list[Any]:
        """Bind and drain in one call."""
        return self.drain(self.bind(g, parameters))


def tokenize(script: str) -> list[Token]:
    """Split a script into tokens, rejecting anything outside the grammar."""
    tokens: list[Token] = []
    position = 0
    while position < len(script):
        match = _TOKEN_PATTERN.match(script, position)
        if match is None:
            raise UnsupportedQueryShapeError(
                f"Unexpected character {script[position]!r} at position {position}",
                query=script,
            )
        kind = match.lastgroup or ""
        if kind != "ws":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()
    return tokens


def validate_script(script: str, source: str = "g") -> ParsedTraversal:
    """Check shape and safety of a traversal script without a backend.

    Args:
        script: Gremlin traversal script
        source: Expected traversal source name

    Returns:
        The parsed traversal

    Raises:
        UnsupportedQueryShapeError: Script does not start with ``<source>.``
            or falls outside the step grammar
        UnsafeQueryError: Script contains a denylisted token
    """
    stripped = script.strip()
    if not stripped.startswith(f"{source}."):
        raise UnsupportedQueryShapeError(
            f"Query does not start with {source}. - cannot execute as traversal",
            query=script,
        )

    unsafe_token = find_unsafe_token(stripped)
    if unsafe_token is not None:
        raise UnsafeQueryError(
            f"Potentially unsafe Gremlin query rejected (contains {unsafe_token!r})",
            query=script,
        )

    return _Parser(stripped, source).parse()


class _Parser:
    def __init__(self, script: str, source: str) -> None:
        self._script = script
        self._source = source
        self._tokens = tokenize(script)
        self._pos = 0

    def parse(self) -> ParsedTraversal:
        self._expect("name", self._source)
        steps = self._parse_chain(top_level=True)
        if steps[0].name not in SOURCE_STEPS:
            self._fail(
                f"Traversal must start with one of {sorted(SOURCE_STEPS)}, got {steps[0].name!r}"
            )
        if self._peek() is not None:
            self._fail(f"Unexpected {self._peek().text!r} after traversal")  # type: ignore[union-attr]

        take: int | None = None
        terminal = "toList"
        if steps[-1].name in TERMINAL_STEPS:
            terminal = steps[-1].name
            if terminal == "next":
                take = self._next_count(steps[-1])
            elif steps[-1].args:
                self._fail(f"{terminal}() takes no arguments")
            steps = steps[:-1]
            if not steps:
                self._fail("Traversal has no steps before its terminal step")
        return ParsedTraversal(
            source=self._source, steps=tuple(steps), take=take, terminal=terminal
        )

    def _parse_chain(self, top_level: bool, first: Step | None = None) -> list[Step]:
        steps: list[Step] = [first] if first is not None else []
        if first is None:
            self._expect("punct", ".")
            steps.append(self._parse_step(top_level))
        while self._at("punct", "."):
            if top_level and steps[-1].name in TERMINAL_STEPS:
                self._fail(f"{steps[-1].name}() must be the last step")
            self._advance()
            steps.append(self._parse_step(top_level))
        return steps

    def _parse_step(self, top_level: bool) -> Step:
        name = self._expect("name").text
        allowed = name in STEP_WHITELIST or (top_level and name in TERMINAL_STEPS)
        if not allowed:
            self._fail(f"Unsupported traversal step {name!r}")
        return Step(name=name, args=self._parse_args())

    def _parse_args(self) -> tuple[Any, ...]:
        self._expect("punct", "(")
        args: list[Any] = []
        if not self._at("punct", ")"):
            args.append(self._parse_arg())
            while self._at("punct", ","):
                self._advance()
                args.append(self._parse_arg())
        self._expect("punct", ")")
        return tuple(args)

    def _parse_arg(self) -> Any:
        token = self._advance()
        if token.kind == "string":
            return Literal(_unquote(token.text))
        if token.kind == "number":
            return Literal(_parse_number(token.text))
        if token.kind == "punct" and token.text == "[":
            items: list[Any] = []
            if not self._at("punct", "]"):
                items.append(self._parse_arg())
                while self._at("punct", ","):
                    self._advance()
                    items.append(self._parse_arg())
            self._expect("punct", "]")
            return ListLiteral(tuple(items))
        if token.kind != "name":
            self._fail(f"Unexpected {token.text!r}")

        name = token.text
        if name in ("true", "false"):
            return Literal(name == "true")
        if name == "null":
            return Literal(None)
        if name == "__":
            return Anonymous(tuple(self._parse_chain(top_level=False)))
        if name.startswith("_"):
            self._fail(f"Unsupported identifier {name!r}")
        if name in TOKEN_CLASSES and self._at("punct", "."):
            self._advance()
            attr = self._expect("name").text
            if attr.startswith("_"):
                self._fail(f"Unsupported identifier {name}.{attr}")
            if self._at("punct", "("):
                return TokenCall(owner=name, method=attr, args=self._parse_args())
            return TokenRef(owner=name, attr=attr)
        if self._at("punct", "("):
            if name in PREDICATES:
                return TokenCall(owner=None, method=name, args=self._parse_args())
            if name in STEP_WHITELIST:
                first = Step(name=name, args=self._parse_args())
                return Anonymous(tuple(self._parse_chain(top_level=False, first=first)))
            self._fail(f"Unsupported function {name!r}")
        return Binding(name)

    def _next_count(self, terminal: Step) -> int:
        if not terminal.args:
            return 1
        arg = terminal.args[0]
        if len(terminal.args) == 1 and isinstance(arg, Literal) and isinstance(arg.value, int):
            return arg.value
        self._fail("next() accepts a single integer literal")
        return 1  # unreachable, _fail raises

    def _peek(self) -> Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _at(self, kind: str, text: str) -> bool:
        token = self._peek()
        return token is not None and token.kind == kind and token.text == text

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            self._fail("Unexpected end of script")
        self._pos += 1
        return token  # type: ignore[return-value]

    def _expect(self, kind: str, text: str | None = None) -> Token:
        token = self._peek()
        if token is None or token.kind != kind or (text is not None and token.text != text):
            found = "end of script" if token is None else repr(token.text)
            self._fail(f"Expected {text or kind!r}, found {found}")
        return self._advance()

    def _fail(self, message: str) -> None:
        raise UnsupportedQueryShapeError(message, query=self._script)


def python_name(name: str) -> str:
    """Map a Gremlin step/token name to its gremlinpython attribute name."""
    if name in _PYTHON_RESERVED:
        return _PYTHON_RESERVED[name]
    if name in ("V", "E"):
        return name
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _lookup(owner: Any, name: str) -> Any:
    for candidate in (python_name(name), name):
        attribute = getattr(owner, candidate, None)
        if attribute is not None:
            return attribute
    raise UnsupportedQueryShapeError(f"Unsupported traversal element {name!r}")


def _step_method(traversal: Any, name: str) -> Any:
    # GraphTraversal and __ turn unknown attributes into values(<name>) steps,
    # so a step must be defined on the class before it is fetched
    classes = traversal.__mro__ if isinstance(traversal, type) else type(traversal).__mro__
    for candidate in (python_name(name), name):
        if any(candidate in vars(klass) for klass in classes):
            return getattr(traversal, candidate)
    raise UnsupportedQueryShapeError(f"Unsupported traversal step {name!r}")


def _apply_steps(start: Any, steps: tuple[Step, ...], parameters: dict[str, Any]) -> Any:
    traversal = start
    for step in steps:
        method = _step_method(traversal, step.name)
        traversal = method(*(_resolve(arg, parameters) for arg in step.args))
    return traversal


def _resolve(arg: Any, parameters: dict[str, Any]) -> Any:
    if isinstance(arg, Literal):
        return arg.value
    if isinstance(arg, ListLiteral):
        return [_resolve(item, parameters) for item in arg.items]
    if isinstance(arg, Binding):
        if arg.name in parameters:
            return parameters[arg.name]
        if arg.name in BARE_TOKENS:
            return BARE_TOKENS[arg.name]
        raise UnsupportedQueryShapeError(f"Unknown identifier {arg.name!r}")
    if isinstance(arg, TokenRef):
        return _lookup(TOKEN_CLASSES[arg.owner], arg.attr)
    if isinstance(arg, TokenCall):
        if arg.owner is not None:
            owner = TOKEN_CLASSES[arg.owner]
        else:
            owner = TextP if arg.method in _TEXT_PREDICATES else P
        method = _lookup(owner, arg.method)
        return method(*(_resolve(item, parameters) for item in arg.args))
    if isinstance(arg, Anonymous):
        return _apply_steps(__, arg.steps, parameters)
    raise UnsupportedQueryShapeError(f"Unsupported argument {arg!r}")


def _unquote(text: str) -> str:
    body = text[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


def _parse_number(text: str) -> int | float:
    suffix = text[-1] if text[-1] in "lLdDfF" else ""
    digits = text[:-1] if suffix else text
    if suffix in ("d", "D", "f", "F") or any(c in digits for c in ".eE"):
        return float(digits)
    return int(digits)
