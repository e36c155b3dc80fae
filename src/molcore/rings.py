"""Ring perception and ring ordering for molecules.

The perception is Figueras' method (J. Chem. Inf. Comput. Sci. 1996, 36,
986-991): side chains are pruned from a working set of atoms, then a
breadth-first search from a seed atom stops at the first path collision
whose two branches only share the seed.
"""

from __future__ import annotations

from collections import deque
from enum import Enum
from typing import TYPE_CHECKING, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from molcore.model import Atom, Ring

if TYPE_CHECKING:
    from molcore.molecule import Molecule


class RingStrategy(str, Enum):
    """How the working set is consumed during ring perception."""
    # Seed with the highest degree atom, drop every atom of a found ring.
    HIGHEST_DEGREE = "highest_degree"
    # Seed with the lowest working degree atom, break the ring at the seed
    # and re-prune; rings are deduplicated by unique id.
    PRUNED = "pruned"


def prune_atom(molecule: "Molecule", atom_id: str, working_set: Dict[str, int]) -> None:
    """Remove one atom from the working set, lowering its neighbours' degree."""
    for neighbour in molecule.neighbours(atom_id):
        if neighbour.id in working_set:
            working_set[neighbour.id] -= 1
    del working_set[atom_id]


def prune_side_chains(molecule: "Molecule", working_set: Dict[str, int]) -> None:
    """Strip every atom of working degree < 2 until none is left.

    Only the working set is touched, never the molecule graph.
    """
    has_pruned = True
    while has_pruned:
        terminal = [atom_id for atom_id, degree in working_set.items() if degree < 2]
        has_pruned = bool(terminal)
        for atom_id in terminal:
            if atom_id in working_set:
                prune_atom(molecule, atom_id, working_set)


def get_ring(molecule: "Molecule", start_atom_id: str) -> Optional[Ring]:
    """Find the first ring closed by a breadth-first search from an atom.

    Args:
        molecule: Molecule holding the atom.
        start_atom_id: Seed atom, expected to have degree >= 2.

    Returns:
        The ring found or `None` when no branch collision occurs.
    """
    path: Dict[str, Set[str]] = {atom_id: set() for atom_id in molecule.atoms}
    path[start_atom_id] = {start_atom_id}
    queue: Deque[Tuple[str, str]] = deque()

    for neighbour in molecule.neighbours(start_atom_id):
        path[neighbour.id] = {start_atom_id, neighbour.id}
        queue.append((neighbour.id, start_atom_id))

    while queue:
        current, source = queue.popleft()
        for neighbour in molecule.neighbours(current):
            m = neighbour.id
            if m == source:
                continue
            if not path[m]:
                path[m] = path[current] | {m}
                queue.append((m, current))
                continue
            overlap = path[current] & path[m]
            if len(overlap) == 1:
                return Ring(path[m] | path[current], parent=molecule)
    return None


def perceive_rings(
    molecule: "Molecule",
    strategy: RingStrategy = RingStrategy.HIGHEST_DEGREE,
) -> List[Ring]:
    """Run ring perception over the whole molecule.

    Callers check `molecule.has_rings` first; an acyclic molecule only wastes
    a pruning pass here.
    """
    working_set = molecule.projection(lambda atom: atom.degree)
    prune_side_chains(molecule, working_set)
    if strategy is RingStrategy.PRUNED:
        return _perceive_pruned(molecule, working_set)
    return _perceive_highest_degree(molecule, working_set)


def _perceive_highest_degree(molecule: "Molecule", working_set: Dict[str, int]) -> List[Ring]:
    rings: List[Ring] = []
    while working_set:
        # max() keeps the first atom of maximal degree in iteration order
        start = max(working_set, key=lambda atom_id: molecule.atoms[atom_id].degree)
        ring = get_ring(molecule, start)
        if ring is None:
            del working_set[start]
            continue
        rings.append(ring)
        for atom_id in ring.atom_ids:
            working_set.pop(atom_id, None)
    return rings


def _perceive_pruned(molecule: "Molecule", working_set: Dict[str, int]) -> List[Ring]:
    rings: List[Ring] = []
    seen: Set[str] = set()
    while working_set:
        start = min(working_set, key=working_set.__getitem__)
        ring = get_ring(molecule, start)
        if ring is None or ring.unique_id in seen:
            del working_set[start]
            continue
        rings.append(ring)
        seen.add(ring.unique_id)
        prune_atom(molecule, start, working_set)
        prune_side_chains(molecule, working_set)
    return rings


def sort_rings_for_db_placement(
    rings: Iterable[Ring],
    atom_rings: Mapping[str, List[Ring]],
) -> List[Ring]:
    """Order rings for double bond placement (Clark, Mol. Inf. 2013, 32, 291).

    1. Keep rings of size 6, 5, 7, 4 and 3, in that order.
    2. Stable sort by the summed ring membership count of each ring's atoms,
       lowest first.
    3. Stable sort by the number of double bonds in the ring, highest first.
    """
    prioritised = sorted((ring for ring in rings if ring.priority > 0), key=lambda ring: ring.priority)

    shared: Dict[Ring, int] = {
        ring: sum(len(atom_rings.get(atom_id, ())) for atom_id in ring.atom_ids)
        for ring in prioritised
    }
    lowest_shared = sorted(prioritised, key=shared.__getitem__)

    doubles: Dict[Ring, int] = {
        ring: sum(1 for bond in ring.bonds if bond.order_value == 2)
        for ring in lowest_shared
    }
    return sorted(lowest_shared, key=lambda ring: -doubles[ring])


def depth_first_traversal(
    start: Atom,
    operation: Callable[[Atom], None],
    is_unprocessed: Callable[[Atom], bool],
    neighbours_of: Callable[[Atom], List[Atom]],
) -> None:
    """Apply `operation` to every atom reachable from `start`.

    Walks linear stretches iteratively and recurses once per branch when an
    atom has several unprocessed neighbours. The atoms need not belong to a
    molecule: `neighbours_of` resolves adjacency.
    """
    operation(start)
    current = start
    while True:
        pending = [atom for atom in neighbours_of(current) if is_unprocessed(atom)]
        if not pending:
            return
        if len(pending) == 1:
            current = pending[0]
            operation(current)
            continue
        for atom in pending:
            # an earlier branch may already have reached this atom
            if is_unprocessed(atom):
                depth_first_traversal(atom, operation, is_unprocessed, neighbours_of)
