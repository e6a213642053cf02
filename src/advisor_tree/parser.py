"""Dataset loader for advisor-tree.

The dataset is a single JSON document:

    root: <node id>
    summary: {total_nodes, direct_advisees, max_depth, depth_counts, generated_from}
    generated_at: <optional string>
    nodes: [{id, name, depth, direct_advisee_count, total_descendants, ...}, ...]
    edges: [{from: <id>, to: <id>}, ...]

JSON text is decoded with ``json``; anything else is read as YAML, which is
what ``tree_to_yaml`` writes and what hand-edited datasets tend to be.

Validation is all-or-nothing: a dataset that references an unknown id is
rejected outright rather than rendered partially.
"""

from __future__ import annotations
import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import AdvisorEdge, AdvisorNode, AdvisorTree, DatasetSummary


class DatasetValidationError(ValueError):
    """The dataset cannot be rendered (unknown ids, duplicate ids, bad root)."""


def parse_dataset(text: str) -> AdvisorTree:
    """Parse and validate a JSON/YAML dataset string."""
    data = _decode(text)
    if not data:
        raise DatasetValidationError("Empty dataset")
    if not isinstance(data, dict):
        raise DatasetValidationError("Dataset must be a mapping")
    return build_tree(data)


def _decode(text: str):
    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError as e:
            raise DatasetValidationError(f"Invalid JSON: {e}") from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DatasetValidationError(f"Invalid YAML: {e}") from e


def parse_file(path: str | Path) -> AdvisorTree:
    """Parse and validate a dataset file."""
    content = Path(path).read_text(encoding="utf-8")
    return parse_dataset(content)


def build_tree(data: dict) -> AdvisorTree:
    """Build an ``AdvisorTree`` from already-decoded data and validate it."""
    if "root" not in data:
        raise DatasetValidationError("Dataset has no 'root'")
    node_entries = _entries(data, "nodes")
    edge_entries = _entries(data, "edges")

    try:
        tree = AdvisorTree(
            root=str(data["root"]),
            summary=DatasetSummary(**(data.get("summary") or {})),
            generated_at=data.get("generated_at"),
            nodes=[_parse_node(node_data) for node_data in node_entries],
            edges=[_parse_edge(edge_data) for edge_data in edge_entries],
        )
    except (ValidationError, KeyError, TypeError, ValueError, AttributeError) as e:
        raise DatasetValidationError(f"Malformed dataset: {e}") from e

    validate_tree(tree)
    return tree


def _entries(data: dict, key: str) -> list[dict]:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise DatasetValidationError(f"'{key}' must be a list")
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise DatasetValidationError(f"Malformed dataset: {key}[{i}] must be a mapping, got {entry!r}")
    return entries


def validate_tree(tree: AdvisorTree) -> None:
    """Reject datasets the layout engine cannot render faithfully.

    Raises:
        DatasetValidationError: on duplicate node ids, a root that is not a
            node, an edge endpoint missing from the node list, or an edge
            pointing into the root.
    """
    seen: set[str] = set()
    for node in tree.nodes:
        if node.id in seen:
            raise DatasetValidationError(f"Duplicate node id '{node.id}'")
        seen.add(node.id)

    if tree.root not in seen:
        raise DatasetValidationError(f"Root '{tree.root}' is not in the node list")

    for edge in tree.edges:
        for endpoint in (edge.source, edge.target):
            if endpoint not in seen:
                raise DatasetValidationError(
                    f"Edge {edge.source} -> {edge.target} references unknown node '{endpoint}'"
                )
        if edge.target == tree.root:
            raise DatasetValidationError(
                f"Edge {edge.source} -> {edge.target} points into the root"
            )


def _parse_node(data: dict) -> AdvisorNode:
    """Parse a single node, coercing ids to strings; pydantic checks the counts."""
    keywords = data.get("expertise_keywords") or []
    return AdvisorNode(
        id=str(data["id"]),
        name=data.get("name") or "",
        depth=data.get("depth") or 0,
        direct_advisee_count=data.get("direct_advisee_count") or 0,
        total_descendants=data.get("total_descendants") or 0,
        affiliation_name=data.get("affiliation_name"),
        affiliation_domain=data.get("affiliation_domain"),
        research_area_summary=data.get("research_area_summary"),
        expertise_keywords=[str(k) for k in keywords],
        homepage=data.get("homepage"),
        gscholar=data.get("gscholar"),
        dblp=data.get("dblp"),
    )


def _parse_edge(data: dict) -> AdvisorEdge:
    return AdvisorEdge(source=str(data["from"]), target=str(data["to"]))


def tree_to_yaml(tree: AdvisorTree) -> str:
    """Serialize a tree back to YAML in the dataset layout."""
    data = {
        "root": tree.root,
        "summary": tree.summary.model_dump(exclude_none=True),
        "nodes": [],
        "edges": [edge.model_dump(by_alias=True) for edge in tree.edges],
    }
    if tree.generated_at:
        data["generated_at"] = tree.generated_at

    for node in tree.nodes:
        node_data = {
            k: v for k, v in node.model_dump().items()
            if v is not None and v != []
        }
        data["nodes"].append(node_data)

    return yaml.dump(data, default_flow_style=False, sort_keys=False)
