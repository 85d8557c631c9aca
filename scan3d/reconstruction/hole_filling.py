#!/usr/bin/env python3
"""
Boundary detection and hole filling for triangle meshes.

An edge used by exactly one triangle is a boundary edge. Boundary edges are
chained into closed loops and each loop is closed with ear clipping in the
loop's best-fit plane.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


def _directed_edges(faces: np.ndarray) -> List[Edge]:
    tris = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    edges = []
    for a, b, c in tris.tolist():
        edges.extend([(a, b), (b, c), (c, a)])
    return edges


def _edge_counts(directed: List[Edge]) -> "OrderedDict[Edge, int]":
    counts: "OrderedDict[Edge, int]" = OrderedDict()
    for a, b in directed:
        key = (min(a, b), max(a, b))
        counts[key] = counts.get(key, 0) + 1
    return counts


def find_boundary_edges(faces: np.ndarray) -> List[Edge]:
    """Undirected edges (as (min, max) pairs) that belong to exactly one triangle, in first-seen order."""
    counts = _edge_counts(_directed_edges(faces))
    return [edge for edge, count in counts.items() if count == 1]


def trace_boundary_loops(faces: np.ndarray) -> List[List[int]]:
    """
    Chain boundary edges into closed vertex loops.

    Each boundary edge is walked against its direction in the owning
    triangle, so a loop triangulated in order has the same winding as the
    surrounding surface. Open chains (non-manifold boundaries) are dropped.
    """
    directed = _directed_edges(faces)
    counts = _edge_counts(directed)

    outgoing: Dict[int, List[int]] = OrderedDict()
    hole_edges: List[Edge] = []
    for a, b in directed:
        if counts[(min(a, b), max(a, b))] == 1:
            outgoing.setdefault(b, []).append(a)
            hole_edges.append((b, a))

    visited = set()
    loops: List[List[int]] = []
    for start, first in hole_edges:
        if (start, first) in visited:
            continue
        visited.add((start, first))
        loop = [start]
        current = first
        closed = True
        while current != start:
            loop.append(current)
            candidates = [n for n in outgoing.get(current, []) if (current, n) not in visited]
            if not candidates:
                closed = False
                break
            visited.add((current, candidates[0]))
            current = candidates[0]

        if closed and len(loop) >= 3:
            loops.append(loop)
        elif not closed:
            logger.debug(f"Dropped open boundary chain of {len(loop)} vertices")

    return loops


def _plane_coordinates(points: np.ndarray):
    """Project loop points onto their Newell plane; None when the loop has no area."""
    following = np.roll(points, -1, axis=0)
    normal = np.cross(points, following).sum(axis=0)
    length = np.linalg.norm(normal)
    if length == 0:
        return None
    normal /= length

    axis = np.eye(3)[int(np.argmin(np.abs(normal)))]
    u = np.cross(axis, normal)
    u /= np.linalg.norm(u)
    v = np.cross(normal, u)
    return np.column_stack([points @ u, points @ v])


def _cross2(o: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    return float((a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0]))


def _fan(vertices: List[int]) -> List[int]:
    triangles = []
    for i in range(1, len(vertices) - 1):
        triangles.extend([vertices[0], vertices[i], vertices[i + 1]])
    return triangles


def ear_clipping(positions: np.ndarray, loop: List[int]) -> List[int]:
    """
    Triangulate a closed boundary loop.

    Args:
        positions: (N, 3) mesh vertex positions
        loop: vertex indices of the loop, in walking order

    Returns:
        Flat list of triangle indices covering the loop. Loops with no
        usable ear fall back to a fan around the first remaining vertex.
    """
    if len(loop) < 3:
        return []
    if len(loop) == 3:
        return list(loop)

    coords = _plane_coordinates(np.asarray(positions, dtype=np.float64)[loop])
    if coords is None:
        return _fan(list(loop))

    remaining = list(range(len(loop)))
    triangles: List[int] = []

    while len(remaining) > 3:
        ear_found = False
        count = len(remaining)
        for position in range(count):
            prev_i = remaining[position - 1]
            cur_i = remaining[position]
            next_i = remaining[(position + 1) % count]
            a, b, c = coords[prev_i], coords[cur_i], coords[next_i]

            if _cross2(a, b, c) <= 0:
                continue

            blocked = False
            for other in remaining:
                if other in (prev_i, cur_i, next_i):
                    continue
                p = coords[other]
                if _cross2(a, b, p) >= 0 and _cross2(b, c, p) >= 0 and _cross2(c, a, p) >= 0:
                    blocked = True
                    break
            if blocked:
                continue

            triangles.extend([loop[prev_i], loop[cur_i], loop[next_i]])
            remaining.pop(position)
            ear_found = True
            break

        if not ear_found:
            triangles.extend(_fan([loop[i] for i in remaining]))
            return triangles

    triangles.extend(loop[i] for i in remaining)
    return triangles
