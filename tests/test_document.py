import json

import pytest

from ocamlrep import (
    DOCUMENT_VERSION,
    Heap,
    build_value_document,
    canonicalize_document,
    hash_value_document,
    load_value_document,
    read_value_document,
    write_value_document,
)


def _doc(root):
    return {"ocamlrep_version": DOCUMENT_VERSION, "root": root}


def test_load_value_document_allocates_a_heap():
    doc = _doc(
        {
            "tag": 0,
            "fields": [
                1,
                {"string": "hi", "id": "s"},
                {"ref": "s"},
                {"double": 2.5},
                {"double_array": [1.0, 2.0]},
                {"bytes_hex": "ff00"},
            ],
        }
    )

    heap, value = load_value_document(doc)
    block = value.as_block()

    assert block.size == 6
    assert block[0].as_int() == 1
    assert block[1].as_block().as_bytes() == b"hi"
    assert block[2] == block[1]
    assert block[3].as_block().as_float() == 2.5
    assert block[4].as_block().as_float_array() == (1.0, 2.0)
    assert block[5].as_block().as_bytes() == b"\xff\x00"
    assert len(heap) == 5


def test_load_value_document_into_an_existing_heap():
    heap = Heap()
    heap.tuple(1)
    same_heap, value = load_value_document(_doc({"tag": 2, "fields": []}))

    assert same_heap is not heap
    loaded_heap, _ = load_value_document(_doc(3), heap)
    assert loaded_heap is heap
    assert value.as_block().tag == 2


@pytest.mark.parametrize(
    "doc, message",
    [
        ({"root": 1}, "version"),
        ({"ocamlrep_version": DOCUMENT_VERSION}, "missing root"),
        (_doc({"ref": "nope"}), "undefined block"),
        (_doc({"tag": 0, "fields": [True]}), "root.fields[0]"),
        (_doc({"tag": 252, "fields": []}), "reserved"),
        (_doc({"tag": "zero"}), "integer"),
        (_doc({"what": 1}), "unrecognised"),
        (_doc(2**70), "immediate"),
        (_doc({"bytes_hex": "zz"}), "bytes_hex"),
        (_doc({"tag": 0, "fields": 5}), "fields must be a list"),
        (_doc({"ref": []}), "ref must be a string"),
        (_doc({"string": None}), "string payload"),
        (_doc({"string": 3}), "string payload"),
        (_doc({"tag": 0, "id": ["a"]}), "id must be a string"),
        (_doc({"double": "1.5"}), "double payload"),
        (_doc({"double_array": [1.0, True]}), "double_array payload"),
        (_doc({"double_array": 1.0}), "double_array payload"),
        (
            _doc({"tag": 0, "fields": [{"tag": 0, "id": "a"}, {"tag": 0, "id": "a"}]}),
            "duplicate",
        ),
    ],
)
def test_load_value_document_rejects_malformed_documents(doc, message):
    with pytest.raises(ValueError) as excinfo:
        load_value_document(doc)
    assert message in str(excinfo.value)


def test_build_value_document_preserves_sharing():
    heap = Heap()
    shared = heap.alloc_string("hi")
    value = heap.tuple(7, shared, shared, heap.alloc_string(b"\xff"))

    doc = build_value_document(value)
    fields = doc["root"]["fields"]

    assert fields[0] == 7
    assert fields[1]["string"] == "hi"
    assert fields[2] == {"ref": fields[1]["id"]}
    assert fields[3]["bytes_hex"] == "ff"

    _, reloaded = load_value_document(doc)
    assert build_value_document(reloaded) == doc


def test_hash_ignores_ids_and_sharing():
    shared = _doc({"tag": 0, "fields": [{"string": "hi", "id": "s"}, {"ref": "s"}]})
    copied = _doc({"tag": 0, "fields": [{"string": "hi"}, {"string": "hi"}]})
    different = _doc({"tag": 0, "fields": [{"string": "hi"}, {"string": "ho"}]})

    assert canonicalize_document(shared) == canonicalize_document(copied)
    assert hash_value_document(shared) == hash_value_document(copied)
    assert hash_value_document(shared) != hash_value_document(different)


def _nested_pairs(depth):
    heap = Heap()
    value = heap.alloc_string("leaf")
    for _ in range(depth):
        value = heap.tuple(value, value)
    return build_value_document(value)


def _expanded_pairs(depth):
    node = {"string": "leaf"}
    for _ in range(depth):
        node = {"tag": 0, "fields": [node, node]}
    return _doc(node)


def test_hash_matches_the_expanded_document():
    assert hash_value_document(_nested_pairs(4)) == hash_value_document(_expanded_pairs(4))


def test_hash_of_deeply_shared_documents():
    doc = _nested_pairs(200)

    assert len(json.dumps(doc)) < 100_000
    assert hash_value_document(doc) != hash_value_document(_nested_pairs(199))
    assert hash_value_document(doc) == hash_value_document(_nested_pairs(200))


def test_hash_treats_string_and_hex_payloads_alike():
    assert hash_value_document(_doc({"string": "hi"})) == hash_value_document(
        _doc({"bytes_hex": "6869"})
    )
    assert hash_value_document(_doc(1)) != hash_value_document(_doc({"string": "1"}))


def test_write_and_read_value_documents(tmp_path):
    doc = _doc({"tag": 1, "fields": [1, 2]})
    path = tmp_path / "value.json"

    assert write_value_document(doc, path) is doc
    assert json.loads(path.read_text(encoding="utf-8")) == doc
    assert read_value_document(path) == doc
