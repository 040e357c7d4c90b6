"""Command-line interface for inspecting and decoding value documents."""
from __future__ import annotations

import argparse
import json
import sys

from ..schema import parse_type_expr
from .analysis import explain_error, export_graphviz, format_value, visualize_value
from .errors import FromError
from .document import hash_value_document, load_value_document, read_value_document


def parse_args(args):
    argp = argparse.ArgumentParser(description="Inspect and decode OCaml value documents")

    argp.add_argument("document", help="Path to a value document (.json)")
    argp.add_argument(
        "--type",
        dest="type_expr",
        metavar="EXPR",
        help="Decode the value as an OCaml type, e.g. '(int * string) list'",
    )
    argp.add_argument("--show", action="store_true", help="Print the value's block tree")
    argp.add_argument("--hash", action="store_true", help="Print the document's SHA-256")
    argp.add_argument(
        "--viz",
        metavar="OUTPUT",
        help="Export a Graphviz rendering of the value to an SVG file",
    )
    argp.add_argument(
        "--visualize", action="store_true", help="Draw the value graph with matplotlib"
    )

    return argp.parse_args(args)


def main(args=None):
    params = parse_args(args)

    try:
        doc = read_value_document(params.document)
        _, value = load_value_document(doc)
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        print(f"✗ Cannot load {params.document}: {exc}")
        return 2

    if params.hash:
        print(f"SHA256({params.document}) = {hash_value_document(doc)}")
    if params.show:
        for line in format_value(value):
            print(line)
    if params.viz:
        export_graphviz(value, params.viz)
        print(f"  ✓ Graphviz export → {params.viz}")
    if params.visualize:  # pragma: no cover
        visualize_value(value)

    if params.type_expr:
        try:
            decoder = parse_type_expr(params.type_expr)
        except ValueError as exc:
            print(f"✗ {exc}")
            return 2
        try:
            decoded = decoder.from_ocamlrep(value)
        except FromError as err:
            print(f"✗ Value does not decode as {decoder.name}:")
            for line in explain_error(err):
                print("  " + line)
            return 1
        print(f"✓ {decoder.name} = {decoded!r}")
    return 0


__all__ = [
    "main",
    "parse_args",
]


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main(sys.argv[1:]))
