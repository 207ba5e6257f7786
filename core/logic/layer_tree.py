"""
Layer Tree Navigation.

Path derivation and read-only traversal of config node trees. Parent links
are layer paths (string indices); lookups walk the tree from the root.

Exports:
    build_layer_path: Positional path of a child under a parent path
    iter_entries: Depth-first traversal (parents before children)
    iter_leaf_entries: Depth-first traversal of leaf entries only
    find_entry: Entry by layer path
    child_paths: Direct children paths of a group
    collect_layer_paths: Every layer path of a tree
"""

from typing import Dict, Iterator, List, Optional, Sequence

from ..models.layer_config import ConfigNode


def build_layer_path(parent_path: str, layer_id: str, layer_id_extension: Optional[str] = None) -> str:
    """
    Build the positional layer path of a child entry.

    Args:
        parent_path: Path of the parent (the geoviewLayerId for top entries)
        layer_id: Explicit layerId of the child
        layer_id_extension: Optional extension appended as ``layerId.ext``

    Returns:
        ``parent_path/layerId`` or ``parent_path/layerId.ext``
    """
    complete_id = f"{layer_id}.{layer_id_extension}" if layer_id_extension else layer_id
    return f"{parent_path}/{complete_id}"


def iter_entries(nodes: Sequence[ConfigNode]) -> Iterator[ConfigNode]:
    """Depth-first traversal; a group is yielded before its children."""
    for node in nodes:
        yield node
        if node.is_group:
            yield from iter_entries(node.list_of_layer_entry_config)


def iter_leaf_entries(nodes: Sequence[ConfigNode]) -> Iterator[ConfigNode]:
    """Depth-first traversal of leaf entries."""
    for node in iter_entries(nodes):
        if not node.is_group:
            yield node


def find_entry(nodes: Sequence[ConfigNode], layer_path: str) -> Optional[ConfigNode]:
    """
    Find an entry by layer path.

    Args:
        nodes: Top-level entries of one GeoView layer
        layer_path: Path to look up

    Returns:
        The entry or None
    """
    for node in iter_entries(nodes):
        if node.layer_path == layer_path:
            return node
    return None


def child_paths(nodes: Sequence[ConfigNode], group_path: str) -> List[str]:
    """Paths of the direct children of a group (empty for a leaf or unknown path)."""
    group = find_entry(nodes, group_path)
    if group is None or not group.is_group:
        return []
    return [child.layer_path for child in group.list_of_layer_entry_config]


def collect_layer_paths(nodes: Sequence[ConfigNode]) -> List[str]:
    """Every layer path of a tree, parents first."""
    return [node.layer_path for node in iter_entries(nodes)]


def index_entries(nodes: Sequence[ConfigNode]) -> Dict[str, ConfigNode]:
    """layer path -> entry for a whole tree."""
    return {node.layer_path: node for node in iter_entries(nodes)}
