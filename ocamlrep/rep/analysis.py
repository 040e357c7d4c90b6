"""Inspection utilities: value graphs, Graphviz export and error explanation."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator

try:
    import networkx as nx
except ModuleNotFoundError:  # pragma: no cover
    nx = None

try:
    import matplotlib.pyplot as plt
except ModuleNotFoundError:  # pragma: no cover
    plt = None

try:
    import pydot
except ModuleNotFoundError:  # pragma: no cover
    pydot = None

from ..constants import TAG_COLORS
from .core import Block, Value
from .errors import ErrorInField, FromError


def iter_blocks(value: Value) -> Iterator[Block]:
    """Yield every block reachable from *value* once, depth first."""

    seen = set()
    stack = [value]
    while stack:
        block = stack.pop().as_block()
        if block is None or block.address in seen:
            continue
        seen.add(block.address)
        yield block
        if not block.is_raw():
            stack.extend(reversed(list(block)))


def _node_id(value: Value, parent: str, index: int) -> str:
    block = value.as_block()
    if block is None:
        # Immediates are unboxed; each occurrence is its own node.
        return f"{parent}.{index}"
    return f"b{block.address:x}"


def _block_label(block: Block) -> str:
    kind = block.kind()
    if kind == "string":
        return f"string {block.as_bytes()!r}"
    if kind == "double":
        return f"double {block.as_float()}"
    if kind == "double_array":
        return f"double[{block.size}]"
    return f"tag {block.tag} / size {block.size}"


def build_value_graph(value: Value):
    """Return a ``networkx.DiGraph`` of the blocks and immediates under *value*."""

    if nx is None:
        raise RuntimeError("Value graphs require networkx to be installed")

    graph = nx.DiGraph()
    root_block = value.as_block()
    if root_block is None:
        graph.add_node(
            "root",
            label=f"int {value.as_int()}",
            kind="immediate",
            color=TAG_COLORS["immediate"],
        )
        return graph

    for block in iter_blocks(value):
        bid = f"b{block.address:x}"
        graph.add_node(
            bid,
            label=_block_label(block),
            kind=block.kind(),
            tag=block.tag,
            size=block.size,
            color=TAG_COLORS[block.kind()],
        )
        if block.is_raw():
            continue
        for index, child in enumerate(block):
            cid = _node_id(child, bid, index)
            if child.is_immediate():
                graph.add_node(
                    cid,
                    label=f"int {child.as_int()}",
                    kind="immediate",
                    color=TAG_COLORS["immediate"],
                )
            graph.add_edge(bid, cid, index=index, label=str(index))
    graph.graph["root"] = f"b{root_block.address:x}"
    return graph


def format_value(value: Value) -> list[str]:
    """Render *value* as indented lines, one per block or immediate."""

    lines = []
    printed = set()

    def walk(v, depth, prefix):
        indent = "  " * depth
        block = v.as_block()
        if block is None:
            lines.append(f"{indent}{prefix}{v.as_int()}")
            return
        if block.address in printed:
            lines.append(f"{indent}{prefix}<shared @{block.address:#x}>")
            return
        printed.add(block.address)
        lines.append(f"{indent}{prefix}{_block_label(block)} @{block.address:#x}")
        if not block.is_raw():
            for index, child in enumerate(block):
                walk(child, depth + 1, f"[{index}] ")

    walk(value, 0, "")
    return lines


def visualize_value(value: Value):  # pragma: no cover
    """Draw the value graph with matplotlib."""

    if nx is None or plt is None:
        raise RuntimeError("Visualization requires networkx and matplotlib to be installed")

    graph = build_value_graph(value)
    positions = nx.spring_layout(graph, seed=42)
    nx.draw(
        graph,
        positions,
        labels={n: d["label"] for n, d in graph.nodes(data=True)},
        node_color=[d["color"] for _, d in graph.nodes(data=True)],
        node_size=1400,
        font_size=8,
        arrows=True,
    )
    nx.draw_networkx_edge_labels(
        graph, positions, edge_labels=nx.get_edge_attributes(graph, "label")
    )
    plt.title("OCaml value graph")
    plt.show()


def export_graphviz(value: Value, output_path):
    """Export the value graph to an SVG file through Graphviz."""

    if pydot is None:
        raise RuntimeError("Graphviz export requires the optional pydot dependency")

    value_graph = build_value_graph(value)
    graph = pydot.Dot(
        "ocaml_value",
        graph_type="digraph",
        rankdir="LR",
        fontname="Helvetica",
    )
    for node_id, data in value_graph.nodes(data=True):
        graph.add_node(
            pydot.Node(
                node_id.replace(".", "_"),
                label=data["label"],
                shape="box" if data["kind"] != "immediate" else "ellipse",
                style="filled",
                fillcolor=data["color"],
                fontname="Helvetica",
            )
        )
    for src, dst, data in value_graph.edges(data=True):
        graph.add_edge(
            pydot.Edge(
                src.replace(".", "_"),
                dst.replace(".", "_"),
                label=data["label"],
                color="#7f8c8d",
            )
        )

    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)
    graph.write_svg(str(output_path))
    return graph


def error_path(err: FromError) -> tuple[int, ...]:
    """Return the field indices leading from the root value to the failure."""

    if isinstance(err, ErrorInField):
        return err.path
    return ()


def root_cause(err: FromError) -> FromError:
    if isinstance(err, ErrorInField):
        return err.root_cause
    return err


def explain_error(err: FromError) -> list[str]:
    """Render a decode error as an indented breadcrumb trail."""

    lines = ["value"]
    depth = 1
    for index in error_path(err):
        lines.append("  " * depth + f"field {index}")
        depth += 1
    lines.append("  " * depth + f"✗ {root_cause(err)}")
    return lines


__all__ = [
    "build_value_graph",
    "error_path",
    "explain_error",
    "export_graphviz",
    "format_value",
    "iter_blocks",
    "root_cause",
    "visualize_value",
]
