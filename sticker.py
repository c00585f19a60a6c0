"""
Sticker geometry: rounded square profiles and the flat or extruded face ring
laid on top of each visible cubie face.

All sticker geometry is built facing +z; puzzle.orient_face rotates it onto
the other cube faces.
"""

import math
import logging

from meshdata import (
    MeshData,
    clamp_roundedness,
    round_half_up,
    lerp,
    split_fractions,
    strip_to_triangles,
    ring_to_triangles,
    fan_to_triangles,
    grid_to_triangles,
    fill_grid,
)

logger = logging.getLogger(__name__)

# Extrusion below this depth produces a flat cap only
MIN_EXTRUDE = 0.001
MIN_RING_WIDTH = 0.01
MIN_EDGE_RADIUS = 0.01

UP = (0.0, 0.0, 1.0)


def _profile_quadrants(side, z, roundedness):
    """Corner centers and counter-clockwise corner arcs of a rounded square."""
    r_pct = clamp_roundedness(roundedness)
    square = r_pct == 0
    circle = r_pct == 1
    subdivisions = 0 if square else min(16, max(4, round_half_up(r_pct * 20)))

    s = side / 2
    radius = r_pct * s
    corner = 0.0 if circle else s - radius
    centers = [(corner, corner, z), (-corner, corner, z), (-corner, -corner, z), (corner, -corner, z)]

    arcs = []
    for q, (cx, cy, _) in enumerate(centers):
        if square:
            arcs.append([(cx, cy, z)])
            continue
        # a full circle shares arc endpoints between neighbouring quadrants
        steps = subdivisions if circle else subdivisions + 1
        arc = []
        for i in range(steps):
            angle = math.radians(90 * q + 90 * i / subdivisions)
            arc.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle), z))
        arcs.append(arc)
    return centers, arcs, square, circle


def rounded_square_positions(side, z, roundedness, no_center=False, subdivide=None):
    """
    Counter-clockwise ring of points tracing a rounded square.

    Args:
        side: Side length of the square
        z: Height of the ring
        roundedness: Corner radius as a fraction of half the side (0 = sharp,
            1 = circle); snapped to 0/1 near the ends
        no_center: Leave out the corner-center points used as fan hubs
        subdivide: Extra points along each straight edge, as a count or a list
            of split fractions

    Returns:
        List of (x, y, z) tuples
    """
    centers, arcs, square, circle = _profile_quadrants(side, z, roundedness)
    fractions = split_fractions(subdivide)

    quadrants = []
    for center, arc in zip(centers, arcs):
        points = list(arc)
        if not no_center and not square and not circle:
            points.insert(0, center)
        quadrants.append(points)
    if circle and not no_center:
        quadrants[0].insert(0, (0.0, 0.0, z))

    ring = []
    for q, points in enumerate(quadrants):
        ring.extend(points)
        start, end = arcs[q][-1], arcs[(q + 1) % 4][0]
        ring.extend(lerp(start, end, t) for t in fractions)
    return ring


def rounded_square_data(side, z, roundedness, subdivide=None):
    """
    Triangulated filled rounded square facing +z.

    Corners are sector fans around their corner centers, the straight edges
    are strips, and the middle is a quad (or a grid when the edges are
    subdivided).

    Returns:
        (points, triangles) as lists
    """
    centers, arcs, square, circle = _profile_quadrants(side, z, roundedness)
    fractions = split_fractions(subdivide)
    points = []
    triangles = []

    def add(p):
        points.append(p)
        return len(points) - 1

    if circle:
        hub = add((0.0, 0.0, z))
        rim = [add(p) for arc in arcs for p in arc]
        triangles.extend(fan_to_triangles(hub, rim, closed=True))
        return points, triangles

    if square:
        hubs = [add(arc[0]) for arc in arcs]
        arc_ids = [[hub] for hub in hubs]
    else:
        hubs = [add(center) for center in centers]
        arc_ids = [[add(p) for p in arc] for arc in arcs]
        for hub, ids in zip(hubs, arc_ids):
            triangles.extend(fan_to_triangles(hub, ids))

    # straight edge from quadrant q + 1 back to quadrant q
    inner_edges = []
    for q in range(4):
        n = (q + 1) % 4
        inner = [hubs[n]]
        inner += [add(lerp(points[hubs[n]], points[hubs[q]], t)) for t in fractions]
        inner.append(hubs[q])
        if not square:
            first, last = arc_ids[n][0], arc_ids[q][-1]
            outer = [first] + [add(lerp(points[first], points[last], t)) for t in fractions] + [last]
            triangles.extend(strip_to_triangles(outer, inner))
        inner_edges.append(inner)

    if fractions:
        rows = fill_grid(
            points,
            row0=inner_edges[0],
            last=inner_edges[2][::-1],
            left=inner_edges[1][::-1],
            right=inner_edges[3],
            fractions=fractions,
        )
        triangles.extend(grid_to_triangles(rows))
    else:
        triangles.extend(strip_to_triangles([hubs[1], hubs[0]], [hubs[2], hubs[3]]))

    return points, triangles


def _bevel_edge_split(roundedness, bevel_width):
    """Straight-edge split fractions that give the face bevel a crease to fold on."""
    face_r = roundedness * 0.5
    if bevel_width - face_r < 0.01:
        return None
    if bevel_width < 0.5:
        t = (bevel_width - face_r) / (1 - 2 * face_r)
        return [t, 1 - t]
    return 1


def extruded_ring_data(side, z, roundedness, width=1.0, extrude=0.0, edge_radius=0.0, bevel_width=0.0):
    """
    Build a sticker: a flat cap, optionally extruded with straight or rounded
    side walls.

    Args:
        side: Outer side length
        z: Base height; the cap sits at z + extrude (or at z when flat)
        roundedness: Corner roundedness of the outline
        width: Ring width as a fraction of the side (1 = solid face)
        extrude: Extrusion depth
        edge_radius: Rounded chamfer on the top edge, as a fraction of the
            largest radius that fits
        bevel_width: Cosmetic bevel width; only adds edge split points here

    Returns:
        MeshData with normal overrides and per-vertex face widths (half-widths)
    """
    width = max(width, MIN_RING_WIDTH)
    if edge_radius < MIN_EDGE_RADIUS:
        edge_radius = 0.0
    r_pct = clamp_roundedness(roundedness)
    ring = not width > 0.99
    extruded = extrude >= MIN_EXTRUDE
    z_cap = z + extrude if extruded else z
    edge_split = _bevel_edge_split(r_pct, bevel_width)

    inner_side = (1 - width) * side
    max_r = min(extrude, (side - inner_side) / 4 if ring else side / 2)
    r = edge_radius * max_r

    points = []
    widths = []
    triangles = []

    def extend(row, half_width):
        start = len(points)
        points.extend(row)
        widths.extend([half_width] * len(row))
        return list(range(start, len(points)))

    if ring:
        outer_side = side - 2 * r
        inner_cap_side = inner_side + 2 * r
        inner = extend(rounded_square_positions(inner_cap_side, z_cap, r_pct, True, edge_split), inner_cap_side / 2)
        outer = extend(rounded_square_positions(outer_side, z_cap, r_pct, True, edge_split), outer_side / 2)
        triangles.extend(ring_to_triangles(inner, outer))
    else:
        cap_side = side - 2 * r
        cap_points, cap_triangles = rounded_square_data(cap_side, z_cap, r_pct, edge_split)
        extend(cap_points, cap_side / 2)
        triangles.extend(cap_triangles)

    if not extruded:
        logger.debug(f"Flat sticker cap: {len(points)} vertices, {len(triangles)} triangles")
        return MeshData(points, triangles, face_widths=widths)

    overrides = {i: UP for i in range(len(points))}

    boundaries = [(side, 1)]
    if ring:
        boundaries.append((inner_side, -1))

    for wall_side, direction in boundaries:
        upper = rounded_square_positions(wall_side, z_cap, r_pct, True, edge_split)
        lower = [(x, y, z) for x, y, _ in upper]
        if r == 0:
            rows = [(upper, wall_side / 2), (lower, wall_side / 2)]
        else:
            top_side = wall_side - 2 * r * direction
            top = rounded_square_positions(top_side, z_cap, r_pct, True, edge_split)
            bend = []
            for p_top, p_edge in zip(top, upper):
                center = (p_top[0], p_top[1], p_top[2] - r)
                dist = math.dist(center, p_edge)
                bend.append(lerp(center, p_edge, r / dist))
            wall_top = [(x, y, zz - r) for x, y, zz in upper]
            rows = [(top, top_side / 2), (bend, bend[0][0]), (wall_top, wall_side / 2), (lower, wall_side / 2)]

        ids = [extend(row, half_width) for row, half_width in rows]
        if r > 0:
            overrides.update({i: UP for i in ids[0]})

        # outer walls face away from the center, inner walls toward it
        for a, b in zip(ids, ids[1:]):
            if direction > 0:
                triangles.extend(ring_to_triangles(a, b))
            else:
                triangles.extend(ring_to_triangles(b, a))

    logger.debug(f"Extruded sticker: {len(points)} vertices, {len(triangles)} triangles")
    return MeshData(points, triangles, normal_overrides=overrides, face_widths=widths)
