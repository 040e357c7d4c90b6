"""OCaml type expressions and the registry of named types."""

import re

from .rep.decode import (
    BOOL,
    BYTES,
    CHAR,
    FLOAT,
    INT,
    STRING,
    UNIT,
    array_of,
    decoder_for,
    list_of,
    option_of,
    ref_of,
    result_of,
    tuple_of,
)

BUILTIN_TYPES = {
    "int": INT,
    "bool": BOOL,
    "unit": UNIT,
    "char": CHAR,
    "float": FLOAT,
    "string": STRING,
    "bytes": BYTES,
}

TYPE_CONSTRUCTORS = {
    "list": list_of,
    "option": option_of,
    "array": array_of,
    "ref": ref_of,
}

TYPE_REGISTRY = {}


TOKEN_PATTERN = re.compile(r"\s*(?:(?P<name>[A-Za-z_][A-Za-z0-9_']*)|(?P<punct>[()*,]))")


def _tokenize(text):
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        match = TOKEN_PATTERN.match(text, pos)
        if not match:
            raise ValueError(f"Invalid type expression {text!r} at offset {pos}")
        tokens.append(match.group("name") or match.group("punct"))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def error(self, message):
        return ValueError(f"Invalid type expression {self.text!r}: {message}")

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def take(self, expected=None):
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of input")
        if expected is not None and token != expected:
            raise self.error(f"expected {expected!r}, got {token!r}")
        self.pos += 1
        return token

    def parse(self):
        decoder = self.product()
        if self.peek() is not None:
            raise self.error(f"unexpected {self.peek()!r}")
        return decoder

    def product(self):
        parts = [self.application()]
        while self.peek() == "*":
            self.take("*")
            parts.append(self.application())
        if len(parts) == 1:
            return parts[0]
        return tuple_of(*parts)

    def application(self):
        args = self.atom()
        while self.peek() not in (None, "*", ")", ","):
            name = self.take()
            if len(args) == 2 and name == "result":
                args = [result_of(*args)]
                continue
            if len(args) != 1:
                raise self.error(f"{name} takes a single type argument")
            ctor = TYPE_CONSTRUCTORS.get(name)
            if ctor is None:
                raise self.error(f"unknown type constructor {name!r}")
            args = [ctor(args[0])]
        if len(args) != 1:
            raise self.error("type arguments must be applied to a constructor")
        return args[0]

    def atom(self):
        token = self.take()
        if token == "(":
            args = [self.product()]
            while self.peek() == ",":
                self.take(",")
                args.append(self.product())
            self.take(")")
            return args
        if token in BUILTIN_TYPES:
            return [BUILTIN_TYPES[token]]
        if token in TYPE_REGISTRY:
            return [TYPE_REGISTRY[token]]
        raise self.error(f"unknown type {token!r}")


def parse_type_expr(text):
    """Parse an OCaml type expression such as ``(int * string) list`` into a decoder."""

    if not text or not text.strip():
        raise ValueError("Type expression is empty")
    return _Parser(text).parse()


def register_type(name, target, *, reset=False):
    """Make *target* available under *name* in type expressions."""

    if reset:
        TYPE_REGISTRY.clear()
    name = (name or "").strip()
    if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_']*", name):
        raise ValueError(f"Invalid type name: {name!r}")
    if name in BUILTIN_TYPES or name in TYPE_CONSTRUCTORS:
        raise ValueError(f"{name} is a built-in type")
    if name in TYPE_REGISTRY:
        raise ValueError(f"Duplicate type registration for {name}")
    decoder = decoder_for(target)
    TYPE_REGISTRY[name] = decoder
    return decoder


def clear_type_registry():
    """Remove all registered named types."""

    TYPE_REGISTRY.clear()


def get_registered_types():
    """Return a snapshot of the currently registered named types."""

    return {name: decoder for name, decoder in TYPE_REGISTRY.items()}


__all__ = [
    "BUILTIN_TYPES",
    "TYPE_CONSTRUCTORS",
    "TYPE_REGISTRY",
    "clear_type_registry",
    "get_registered_types",
    "parse_type_expr",
    "register_type",
]
