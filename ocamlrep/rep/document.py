"""JSON value documents: a portable description of a value and its heap."""

from __future__ import annotations

import hashlib
import json

from ..constants import DOCUMENT_VERSION
from .core import Heap, Value


def _is_real(x):
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _load_node(node, heap, ids, path):
    if isinstance(node, bool) or not isinstance(node, (int, dict)):
        raise ValueError(f"{path}: expected an integer or an object, got {node!r}")
    if isinstance(node, int):
        try:
            return Value.from_int(node)
        except OverflowError as exc:
            raise ValueError(f"{path}: {exc}") from exc

    if "ref" in node:
        ref = node["ref"]
        if not isinstance(ref, str):
            raise ValueError(f"{path}: block ref must be a string, got {ref!r}")
        target = ids.get(ref)
        if target is None:
            raise ValueError(f"{path}: reference to undefined block {ref!r}")
        return target

    node_id = node.get("id")
    if node_id is not None and not isinstance(node_id, str):
        raise ValueError(f"{path}: block id must be a string, got {node_id!r}")

    if "string" in node:
        text = node["string"]
        if not isinstance(text, str):
            raise ValueError(f"{path}: string payload must be a string, got {text!r}")
        value = heap.alloc_string(text)
    elif "bytes_hex" in node:
        try:
            data = bytes.fromhex(node["bytes_hex"])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{path}: invalid bytes_hex") from exc
        value = heap.alloc_string(data)
    elif "double" in node:
        x = node["double"]
        if not _is_real(x):
            raise ValueError(f"{path}: double payload must be a number, got {x!r}")
        value = heap.alloc_double(x)
    elif "double_array" in node:
        items = node["double_array"]
        if not isinstance(items, list) or not all(_is_real(x) for x in items):
            raise ValueError(f"{path}: double_array payload must be a list of numbers")
        value = heap.alloc_double_array(items)
    elif "tag" in node:
        tag = node["tag"]
        if isinstance(tag, bool) or not isinstance(tag, int):
            raise ValueError(f"{path}: block tag must be an integer")
        children = node.get("fields", [])
        if not isinstance(children, list):
            raise ValueError(f"{path}: block fields must be a list, got {children!r}")
        fields = [
            _load_node(child, heap, ids, f"{path}.fields[{i}]")
            for i, child in enumerate(children)
        ]
        try:
            value = heap.alloc_block(tag, fields)
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
    else:
        raise ValueError(f"{path}: unrecognised node keys {sorted(node)}")

    if node_id is not None:
        if node_id in ids:
            raise ValueError(f"{path}: duplicate block id {node_id!r}")
        ids[node_id] = value
    return value


def load_value_document(doc, heap=None):
    """Allocate the value described by *doc* and return ``(heap, value)``.

    References may only name blocks defined earlier in document order, so
    loaded values are always acyclic.
    """

    if not isinstance(doc, dict) or "root" not in doc:
        raise ValueError("Value document missing root")
    version = doc.get("ocamlrep_version")
    if version != DOCUMENT_VERSION:
        raise ValueError(f"Unsupported value document version: {version!r}")
    heap = heap if heap is not None else Heap()
    value = _load_node(doc["root"], heap, {}, "root")
    return heap, value


def _dump_node(value, seen):
    n = value.as_int()
    if n is not None:
        return n
    block = value.as_block()
    if block.address in seen:
        return {"ref": seen[block.address]}
    node_id = f"b{len(seen)}"
    seen[block.address] = node_id
    kind = block.kind()
    if kind == "string":
        data = block.as_bytes()
        try:
            node = {"string": data.decode("utf-8")}
        except UnicodeDecodeError:
            node = {"bytes_hex": data.hex()}
    elif kind == "double":
        node = {"double": block.as_float()}
    elif kind == "double_array":
        node = {"double_array": list(block.as_float_array())}
    else:
        node = {"tag": block.tag, "fields": [_dump_node(f, seen) for f in block]}
    node["id"] = node_id
    return node


def build_value_document(value):
    """Describe *value* as a JSON-compatible document, preserving sharing."""

    return {
        "ocamlrep_version": DOCUMENT_VERSION,
        "root": _dump_node(value, {}),
    }


def write_value_document(doc, filename):
    """Persist a value document to disk."""

    with open(filename, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)
    return doc


def read_value_document(filename):
    """Load a value document from disk."""

    with open(filename, "r", encoding="utf-8") as f:
        return json.load(f)


def canonicalize_document(doc):
    """Expand references and drop ids so equal values give equal documents.

    Every reference is replaced by a full copy of its target, so a document
    with heavy sharing can expand to a much larger tree. Use
    :func:`hash_value_document` to compare such documents.
    """

    ids = {}

    def expand(node):
        if isinstance(node, dict):
            if "ref" in node:
                return ids[node["ref"]]
            out = {k: expand(v) for k, v in sorted(node.items()) if k != "id"}
            if "id" in node:
                ids[node["id"]] = out
            return out
        if isinstance(node, list):
            return [expand(x) for x in node]
        return node

    return expand(doc)


def _digest(payload):
    data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def _node_digest(node, digests):
    if not isinstance(node, dict):
        return _digest(["int", node])
    if "ref" in node:
        try:
            return digests[node["ref"]]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"reference to undefined block {node['ref']!r}") from exc
    if "string" in node or "bytes_hex" in node:
        if "string" in node:
            data = node["string"].encode("utf-8")
        else:
            data = bytes.fromhex(node["bytes_hex"])
        digest = _digest(["string", data.hex()])
    elif "double" in node:
        digest = _digest(["double", float(node["double"])])
    elif "double_array" in node:
        digest = _digest(["double_array", [float(x) for x in node["double_array"]]])
    else:
        fields = [_node_digest(child, digests) for child in node.get("fields", [])]
        digest = _digest(["block", node.get("tag"), fields])
    if "id" in node:
        digests[node["id"]] = digest
    return digest


def hash_value_document(doc):
    """Compute the SHA-256 of the value a document describes.

    Each block is hashed once from its tag, payload and the digests of its
    fields, and a reference reuses the digest of the block it names. Ids and
    sharing do not affect the result, and the cost stays linear in the size
    of the document.
    """

    root = _node_digest(doc.get("root"), {})
    return _digest({"ocamlrep_version": doc.get("ocamlrep_version"), "root": root})


__all__ = [
    "build_value_document",
    "canonicalize_document",
    "hash_value_document",
    "load_value_document",
    "read_value_document",
    "write_value_document",
]
