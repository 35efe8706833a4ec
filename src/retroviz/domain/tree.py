import hashlib

from retroviz.domain.schemas import MoleculeRecord, RouteNodeRecord, RouteVisualizationNode
from retroviz.exceptions import RouteTreeError
from retroviz.utils.logging import logger


def collect_identities(root: RouteVisualizationNode) -> set[str]:
    """
    Collects the identity (InChIKey, or SMILES as a fallback) of every node in a route.

    Molecules used at several positions collapse to one entry. A new set is
    returned on every call.
    """
    identities: set[str] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        identities.add(node.identity)
        stack.extend(node.children)
    return identities


def collect_smiles(root: RouteVisualizationNode) -> set[str]:
    """Collects the display SMILES of every node in a route."""
    smiles = {root.smiles}
    for child in root.children:
        smiles |= collect_smiles(child)
    return smiles


def collect_inchikeys(root: RouteVisualizationNode) -> set[str]:
    """Collects every InChIKey in a route. Nodes without a key are skipped."""
    keys = {root.inchikey} if root.inchikey else set()
    for child in root.children:
        keys |= collect_inchikeys(child)
    return keys


def calculate_route_length(root: RouteVisualizationNode) -> int:
    """Number of reaction steps on the longest path from the target to a starting material."""
    if not root.children:
        return 0
    return 1 + max(calculate_route_length(child) for child in root.children)


def build_route_tree(records: list[RouteNodeRecord]) -> RouteVisualizationNode:
    """
    Assembles flat route-node records into a single route tree.

    Children appear in the order their records appear in the input.

    Args:
        records: Every node of one route, each pointing at its parent.

    Returns:
        The root of the assembled tree.

    Raises:
        RouteTreeError: If the records are empty, do not have exactly one root,
            reference a missing parent, or contain nodes unreachable from the root.
    """
    if not records:
        raise RouteTreeError("cannot build tree from an empty list of nodes.")

    roots = [r for r in records if r.parent_id is None]
    if not roots:
        raise RouteTreeError("no root node found in route nodes.")
    if len(roots) > 1:
        raise RouteTreeError(f"route has {len(roots)} root nodes, expected exactly one.")

    known_ids = {r.id for r in records}
    children_of: dict[str, list[RouteNodeRecord]] = {r.id: [] for r in records}
    for record in records:
        if record.parent_id is None:
            continue
        if record.parent_id not in known_ids:
            raise RouteTreeError(f"node {record.id} references missing parent {record.parent_id}.")
        children_of[record.parent_id].append(record)

    visited: set[str] = set()

    def _assemble(record: RouteNodeRecord) -> RouteVisualizationNode:
        visited.add(record.id)
        molecule: MoleculeRecord = record.molecule
        return RouteVisualizationNode(
            smiles=molecule.smiles,
            inchikey=molecule.inchikey,
            children=[_assemble(child) for child in children_of[record.id]],
        )

    tree = _assemble(roots[0])

    # anything not reached from the root sits on a parent cycle
    if len(visited) != len(records):
        orphans = sorted(known_ids - visited)
        raise RouteTreeError(f"route nodes {orphans} are not reachable from the root node.")

    logger.debug(f"Assembled route tree with {len(records)} nodes rooted at {tree.smiles}")
    return tree


def _generate_tree_signature(node: RouteVisualizationNode) -> str:
    """
    Recursively generates a canonical, order-invariant signature for a route node and its entire history.

    Returns:
        The node identity for starting materials, otherwise a sha256 hash
        over the sorted reactant signatures and the product identity.
    """
    # Base Case: a starting material is identified by itself.
    if not node.children:
        return node.identity

    # Sort the signatures to ensure order-invariance (A.B>>C is same as B.A>>C)
    reactant_signatures = sorted(_generate_tree_signature(child) for child in node.children)
    signature_string = ".".join(reactant_signatures) + ">>" + node.identity
    return f"route_sha256:{hashlib.sha256(signature_string.encode('utf-8')).hexdigest()}"


def generate_route_signature(root: RouteVisualizationNode) -> str:
    """
    Signature of a whole route, invariant to reactant order.

    A single-molecule route is hashed as well, so every signature carries the
    same prefix.
    """
    signature = _generate_tree_signature(root)
    if not root.children:
        signature = f"route_sha256:{hashlib.sha256(signature.encode('utf-8')).hexdigest()}"
    return signature


def deduplicate_routes(routes: list[RouteVisualizationNode]) -> list[RouteVisualizationNode]:
    """
    Filters a list of routes, returning only the unique ones in their original order.

    Uniqueness is determined by `generate_route_signature`, so routes that only
    differ in reactant order count as duplicates.
    """
    seen_signatures = set()
    unique_routes = []

    logger.debug(f"Deduplicating {len(routes)} routes...")

    for route in routes:
        signature = generate_route_signature(route)
        if signature not in seen_signatures:
            seen_signatures.add(signature)
            unique_routes.append(route)

    num_removed = len(routes) - len(unique_routes)
    if num_removed > 0:
        logger.debug(f"Removed {num_removed} duplicate routes.")

    return unique_routes
