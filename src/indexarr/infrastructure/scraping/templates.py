"""
Template expander for definition inputs, paths and field texts.

Definitions use Go ``text/template`` syntax, so existing community files
work unchanged:

    {{ .Query.Keywords }}
    {{ range .Categories }}filter_cat[{{ . }}]=1&{{ end }}
    {{ if .Query.IMDBID }}{{ .Query.IMDBID }}{{ else }}{{ .Keywords }}{{ end }}
    {{ join .Categories "," }}
    {{ re_replace .Keywords "\\s+" "." }}

Only the subset used by definitions is implemented. Referencing a name that
is not bound raises ``TemplateVariableMissing``; there is no silent blank
substitution.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any
from urllib.parse import quote, quote_plus

from indexarr.domain.indexer import TemplateVariableMissing

_ACTION_RE = re.compile(r"\{\{(-\s)?(.*?)(\s-)?\}\}", re.S)
_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<str>"(?:[^"\\]|\\.)*")
      | (?P<raw>`[^`]*`)
      | (?P<num>-?\d+(?:\.\d+)?)
      | (?P<field>\$?(?:\.[A-Za-z_][A-Za-z0-9_]*)+|\.|\$)
      | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
      | (?P<punct>[()|])
    )""",
    re.X,
)

Escape = Callable[[str], str]


def url_escape(text: str) -> str:
    """Escape a value for a URL template.

    Recognised by the renderer: values before the first literal ``?`` are
    escaped with ``quote`` (path), values after it with ``quote_plus``.
    Called directly it behaves like ``quote``.
    """
    return quote(text)


def _escaped(escape: Escape | None, text: str, out: list[str]) -> str:
    if escape is None:
        return text
    if escape is url_escape:
        # substituted values are escaped, so a "?" in out is literal text
        if any("?" in chunk for chunk in out):
            return quote_plus(text)
        return quote(text)
    return escape(text)


class TemplateSyntaxError(ValueError):
    """Template source could not be parsed."""


# --- AST --------------------------------------------------------------------


@dataclass
class _Text:
    text: str


@dataclass
class _Action:
    expr: list[Any]


@dataclass
class _If:
    branches: list[tuple[list[Any], list[Any]]] = field(default_factory=list)
    otherwise: list[Any] = field(default_factory=list)


@dataclass
class _Range:
    expr: list[Any]
    body: list[Any] = field(default_factory=list)
    otherwise: list[Any] = field(default_factory=list)


# --- expression tokens ------------------------------------------------------


@dataclass(frozen=True)
class _Field:
    path: tuple[str, ...]
    rooted: bool

    @property
    def name(self) -> str:
        prefix = "$" if self.rooted else ""
        return prefix + ("." + ".".join(self.path) if self.path else ".")


@dataclass(frozen=True)
class _Ident:
    name: str


@dataclass(frozen=True)
class _Literal:
    value: Any


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "\"": "\""}


def _unquote(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), "\\" + m.group(1)), body)


def _tokenize(expr: str) -> list[Any]:
    tokens: list[Any] = []
    pos = 0
    expr = expr.strip()
    while pos < len(expr):
        m = _TOKEN_RE.match(expr, pos)
        if not m or m.end() == pos:
            raise TemplateSyntaxError(f"unexpected input in action: {expr[pos:]!r}")
        pos = m.end()
        kind = m.lastgroup
        value = m.group(kind)
        if kind == "str":
            tokens.append(_Literal(_unquote(value[1:-1])))
        elif kind == "raw":
            tokens.append(_Literal(value[1:-1]))
        elif kind == "num":
            tokens.append(_Literal(float(value) if "." in value else int(value)))
        elif kind == "field":
            rooted = value.startswith("$")
            path = tuple(p for p in value.lstrip("$").split(".") if p)
            tokens.append(_Field(path=path, rooted=rooted))
        elif kind == "ident":
            if value in ("true", "false"):
                tokens.append(_Literal(value == "true"))
            elif value == "nil":
                tokens.append(_Literal(None))
            elif value not in FUNCTIONS:
                raise TemplateSyntaxError(f"function {value!r} not defined")
            else:
                tokens.append(_Ident(value))
        else:
            tokens.append(value)
    return tokens


# --- parser -----------------------------------------------------------------


def _split_actions(source: str) -> list[tuple[str, str]]:
    parts: list[tuple[str, str]] = []
    pos = 0
    trim_next = False
    for m in _ACTION_RE.finditer(source):
        text = source[pos : m.start()]
        if trim_next:
            text = text.lstrip()
        if m.group(1):
            text = text.rstrip()
        if text:
            parts.append(("text", text))
        body = m.group(2).strip()
        if not (body.startswith("/*") and body.endswith("*/")):
            parts.append(("action", body))
        trim_next = bool(m.group(3))
        pos = m.end()
    tail = source[pos:]
    if trim_next:
        tail = tail.lstrip()
    if tail:
        parts.append(("text", tail))
    if "{{" in tail:
        raise TemplateSyntaxError("unclosed action")
    return parts


class _Parser:
    def __init__(self, source: str) -> None:
        self.parts = _split_actions(source)
        self.pos = 0

    def parse(self) -> list[Any]:
        nodes, stop = self._parse_list()
        if stop is not None:
            raise TemplateSyntaxError(f"unexpected {{{{ {stop} }}}}")
        return nodes

    def _parse_list(self) -> tuple[list[Any], str | None]:
        nodes: list[Any] = []
        while self.pos < len(self.parts):
            kind, value = self.parts[self.pos]
            self.pos += 1
            if kind == "text":
                nodes.append(_Text(value))
                continue
            keyword, _, rest = value.partition(" ")
            if keyword in ("end", "else"):
                return nodes, value
            if keyword == "if":
                nodes.append(self._parse_if(rest))
            elif keyword == "range":
                nodes.append(self._parse_range(rest))
            else:
                nodes.append(_Action(_tokenize(value)))
        return nodes, None

    def _parse_if(self, cond: str) -> _If:
        node = _If()
        while True:
            if not cond.strip():
                raise TemplateSyntaxError("missing condition in {{ if }}")
            body, stop = self._parse_list()
            node.branches.append((_tokenize(cond), body))
            if stop is None:
                raise TemplateSyntaxError("unterminated {{ if }}")
            if stop == "end":
                return node
            # "else" or "else if <cond>"
            rest = stop[len("else") :].strip()
            if rest.startswith("if "):
                cond = rest[3:]
                continue
            otherwise, stop = self._parse_list()
            if stop != "end":
                raise TemplateSyntaxError("unterminated {{ else }}")
            node.otherwise = otherwise
            return node

    def _parse_range(self, expr: str) -> _Range:
        if not expr.strip():
            raise TemplateSyntaxError("missing pipeline in {{ range }}")
        node = _Range(expr=_tokenize(expr))
        body, stop = self._parse_list()
        node.body = body
        if stop == "else":
            node.otherwise, stop = self._parse_list()
        if stop != "end":
            raise TemplateSyntaxError("unterminated {{ range }}")
        return node


# --- evaluation -------------------------------------------------------------


def _truth(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return bool(value)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return " ".join(_to_text(v) for v in value)
    return str(value)


def _go_repl(repl: str) -> str:
    # Go uses $1 / ${1}; Python wants \g<1>
    return re.sub(r"\$\{?(\w+)\}?", r"\\g<\1>", repl)


def _fn_join(items: Any, sep: str) -> str:
    return sep.join(_to_text(i) for i in (items or []))


def _fn_re_replace(value: Any, pattern: str, repl: str) -> str:
    return re.sub(pattern, _go_repl(repl), _to_text(value))


def _fn_and(*args: Any) -> Any:
    for a in args:
        if not _truth(a):
            return a
    return args[-1] if args else True


def _fn_or(*args: Any) -> Any:
    for a in args:
        if _truth(a):
            return a
    return args[-1] if args else False


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "join": _fn_join,
    "re_replace": _fn_re_replace,
    "eq": lambda a, *b: any(a == x for x in b),
    "ne": lambda a, b: a != b,
    "and": _fn_and,
    "or": _fn_or,
    "not": lambda a: not _truth(a),
    "len": lambda a: len(a or []),
}


class Template:
    """Compiled template; safe to share between tasks."""

    def __init__(self, source: str) -> None:
        self.source = source
        self._nodes = _Parser(source).parse()

    def render(self, namespace: Mapping[str, Any], escape: Escape | None = None) -> str:
        out: list[str] = []
        self._render(self._nodes, namespace, namespace, escape, out)
        return "".join(out)

    def _render(
        self,
        nodes: list[Any],
        dot: Any,
        root: Mapping[str, Any],
        escape: Escape | None,
        out: list[str],
    ) -> None:
        for node in nodes:
            if isinstance(node, _Text):
                out.append(node.text)
            elif isinstance(node, _Action):
                text = _to_text(self._eval(node.expr, dot, root))
                out.append(_escaped(escape, text, out))
            elif isinstance(node, _If):
                for cond, body in node.branches:
                    if _truth(self._eval(cond, dot, root)):
                        self._render(body, dot, root, escape, out)
                        break
                else:
                    self._render(node.otherwise, dot, root, escape, out)
            elif isinstance(node, _Range):
                items = self._eval(node.expr, dot, root)
                if isinstance(items, Mapping):
                    items = list(items.values())
                if _truth(items):
                    for item in items:
                        self._render(node.body, item, root, escape, out)
                else:
                    self._render(node.otherwise, dot, root, escape, out)

    def _eval(self, tokens: list[Any], dot: Any, root: Mapping[str, Any]) -> Any:
        # pipelines: a | f x  ==  f x a
        stages: list[list[Any]] = [[]]
        depth = 0
        for tok in tokens:
            if tok == "|" and depth == 0:
                stages.append([])
                continue
            if tok == "(":
                depth += 1
            elif tok == ")":
                depth -= 1
            stages[-1].append(tok)
        value: Any = _NOTHING
        for stage in stages:
            value = self._eval_command(stage, dot, root, value)
        return value

    def _eval_command(
        self, tokens: list[Any], dot: Any, root: Mapping[str, Any], piped: Any
    ) -> Any:
        args = self._eval_args(tokens, dot, root)
        if not args and piped is _NOTHING:
            raise TemplateSyntaxError(f"empty action in {self.source!r}")
        head = tokens[0] if tokens else None
        if isinstance(head, _Ident):
            fn = FUNCTIONS.get(head.name)
            if fn is None:
                raise TemplateSyntaxError(f"function {head.name!r} not defined")
            call_args = args[1:]
            if piped is not _NOTHING:
                call_args.append(piped)
            return fn(*call_args)
        if piped is not _NOTHING:
            raise TemplateSyntaxError("can only pipe into a function")
        if len(args) != 1:
            raise TemplateSyntaxError(
                f"can't give argument to non-function in {self.source!r}"
            )
        return args[0]

    def _eval_args(
        self, tokens: list[Any], dot: Any, root: Mapping[str, Any]
    ) -> list[Any]:
        out: list[Any] = []
        i = 0
        while i < len(tokens):
            tok = tokens[i]
            if tok == "(":
                depth, j = 1, i + 1
                while j < len(tokens) and depth:
                    if tokens[j] == "(":
                        depth += 1
                    elif tokens[j] == ")":
                        depth -= 1
                    j += 1
                if depth:
                    raise TemplateSyntaxError("unbalanced parenthesis")
                out.append(self._eval(tokens[i + 1 : j - 1], dot, root))
                i = j
                continue
            if isinstance(tok, _Literal):
                out.append(tok.value)
            elif isinstance(tok, _Field):
                out.append(self._lookup(tok, dot, root))
            elif isinstance(tok, _Ident):
                out.append(tok)
            else:
                raise TemplateSyntaxError(f"unexpected {tok!r}")
            i += 1
        return out

    def _lookup(self, ref: _Field, dot: Any, root: Mapping[str, Any]) -> Any:
        current: Any = root if ref.rooted else dot
        for part in ref.path:
            if isinstance(current, Mapping) and part in current:
                current = current[part]
            else:
                raise TemplateVariableMissing(ref.name, template=self.source)
        return current


_NOTHING = object()


@lru_cache(maxsize=1024)
def compile_template(source: str) -> Template:
    return Template(source)


def expand(
    source: str, namespace: Mapping[str, Any], escape: Escape | None = None
) -> str:
    """Render *source* against *namespace*; see module docstring."""
    if "{{" not in source:
        return source
    return compile_template(source).render(namespace, escape)


def expand_url(source: str, namespace: Mapping[str, Any]) -> str:
    """Render a URL template with ``url_escape`` applied to every value."""
    return expand(source, namespace, escape=url_escape)


def validate_template(source: str) -> None:
    """Raise ``TemplateSyntaxError`` if *source* does not compile."""
    if "{{" in source:
        compile_template(source)
