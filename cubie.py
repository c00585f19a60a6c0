"""
Cubie body geometry: a cube with spherically rounded corners and filleted
edges.

One corner patch (an eighth of the rounding sphere) is subdivided once and
copied to all eight corners with fixed signed-permutation matrices. The twelve
edge fillets are strips bridging the border rows of neighbouring corner
patches, and each flat face is closed with a grid between four fillet
borders. Every vertex carries an edge tag bitset (see edgetags) so the body
can later be split into per-face color buckets.
"""

import math
import logging

import numpy as np

from meshdata import (
    MeshData,
    clamp_roundedness,
    round_half_up,
    lerp,
    grid_to_triangles,
    fill_grid,
    orient_outward,
)
from edgetags import (
    CORNER_TRANSFORMS,
    face_id,
    face_pair_tags,
    tag_bit,
    tag_parts,
    lowest_tag,
    consistent_tags,
    transform_tags,
)

logger = logging.getLogger(__name__)

SHAPE_SHARP = 'sharp'
SHAPE_ROUNDED = 'rounded'
SHAPE_SPHERE = 'sphere'


def classify_roundedness(roundedness):
    """
    Decide the body variant once for a roundedness value.

    Returns:
        (shape, clamped roundedness)
    """
    r_pct = clamp_roundedness(roundedness)
    if r_pct == 0:
        return SHAPE_SHARP, r_pct
    if r_pct == 1:
        return SHAPE_SPHERE, r_pct
    return SHAPE_ROUNDED, r_pct


def patch_subdivisions(roundedness):
    """Subdivision depth of the corner patch; grows with the corner radius."""
    return math.ceil(math.sqrt(roundedness * 480 / 6)) + 1


def fillet_rows(roundedness, bevel_width, shape=SHAPE_ROUNDED):
    """Number of intermediate rows in each edge fillet and flat face grid."""
    if shape == SHAPE_ROUNDED:
        return math.floor(0.001 + (1 - roundedness) * 10 / 2) * 2 + 1
    return 9 if bevel_width > 0 else 3


def strip_fractions(count, bevel_width, radius, side=1.0):
    """
    Row positions (fractions along a fillet or face) for count intermediate rows.

    Rows are evenly spaced, except that when a bevel is requested the row
    nearest the bevel crease (and its mirror) is moved onto it. A single row
    ends up at the mirror position.
    """
    fractions = [(i + 1) / (count + 1) for i in range(count)]
    if count and bevel_width - radius > 0.01 and bevel_width < 0.5:
        w = (bevel_width - radius) / (side - 2 * radius)
        i = max(1, min(count // 2, round_half_up(w * (count + 1)))) - 1
        fractions[i] = w
        fractions[count - 1 - i] = 1 - w
    return fractions


class SubdivisionArena:
    """
    Call-local state for subdividing patches on a sphere of the given radius.

    Holds the points (relative to the sphere center), their edge tag bitsets,
    a bitset of the seed-patch borders each point lies on, the triangles, and
    the midpoint cache keyed by the (min, max) endpoint pair.
    """

    def __init__(self, radius):
        self.radius = radius
        self.points = []
        self.tags = []
        self.borders = []
        self.triangles = []
        self._midpoints = {}

    def add_point(self, point, tags, borders=0):
        self.points.append(point)
        self.tags.append(tags)
        self.borders.append(borders)
        return len(self.points) - 1

    def project(self, point):
        scale = self.radius / math.sqrt(point[0] ** 2 + point[1] ** 2 + point[2] ** 2)
        return (point[0] * scale, point[1] * scale, point[2] * scale)

    def midpoints(self, i1, i2, count, tags=None):
        """
        Indices of count evenly spaced points between i1 and i2, ordered from
        i1. Points are created once per edge and reused from either direction.
        """
        key = (i1, i2) if i1 < i2 else (i2, i1)
        cached = self._midpoints.get(key)
        if cached is None:
            p1, p2 = self.points[i1], self.points[i2]
            point_tags = self.tags[i1] & self.tags[i2] if tags is None else tags
            borders = self.borders[i1] & self.borders[i2]
            ids = [
                self.add_point(self.project(lerp(p1, p2, (i + 1) / (count + 1))), point_tags, borders)
                for i in range(count)
            ]
            cached = (i1, ids)
            self._midpoints[key] = cached
        first, ids = cached
        return list(ids) if first == i1 else ids[::-1]

    def subdivide_triangle(self, ia, ib, ic, n):
        """Grid-subdivide triangle (ia, ib, ic) into n rows starting at apex ic."""
        edge_a = self.midpoints(ic, ia, n - 1) + [ia]
        edge_b = self.midpoints(ic, ib, n - 1) + [ib]
        rows = [[ic]]
        for i, (a, b) in enumerate(zip(edge_a, edge_b)):
            rows.append([a] + self.midpoints(a, b, i) + [b])

        for upper, lower in zip(rows, rows[1:]):
            for k in range(len(upper)):
                self.triangles.append((upper[k], lower[k], lower[k + 1]))
                if k + 1 < len(upper):
                    self.triangles.append((upper[k], lower[k + 1], upper[k + 1]))

    def subdivide_patch(self, ia, ib, ic, subdivisions):
        """
        Split a seed triangle at its centroid into six triangles through the
        edge midpoints, then grid-subdivide each of them.

        The centroid and edge midpoints keep only the tags consistent with the
        faces of the points defining them, so each of the six triangles ends
        up labeled with a single (face, neighbour) region.
        """
        pa, pb, pc = self.points[ia], self.points[ib], self.points[ic]
        ta, tb, tc = self.tags[ia], self.tags[ib], self.tags[ic]
        centroid = (pa[0] + pb[0] + pc[0], pa[1] + pb[1] + pc[1], pa[2] + pb[2] + pc[2])
        im = self.add_point(self.project(centroid), consistent_tags(ta | tb | tc))
        d = self.midpoints(ia, ib, 1, consistent_tags(ta | tb))[0]
        e = self.midpoints(ib, ic, 1, consistent_tags(tb | tc))[0]
        f = self.midpoints(ic, ia, 1, consistent_tags(tc | ta))[0]

        for triangle in ((ia, d, im), (d, ib, im), (ib, e, im), (e, ic, im), (ic, f, im), (f, ia, im)):
            self.subdivide_triangle(*triangle, subdivisions - 1)

    def border_row(self, border, start):
        """Indices on a patch border, sorted by distance from point start."""
        origin = np.asarray(self.points[start])
        ids = [i for i, b in enumerate(self.borders) if b & (1 << border)]
        return sorted(ids, key=lambda i: float(np.linalg.norm(np.asarray(self.points[i]) - origin)))


def corner_patch(radius, subdivisions):
    """
    Subdivide the (+,+,+) corner patch of a sphere of the given radius,
    centered at the origin.

    Seed points: 0 on the +z pole, 1 on +x, 2 on +y. Patch border 0 runs from
    seed 0 to 1, border 1 from 1 to 2 and border 2 from 2 to 0.

    Returns:
        SubdivisionArena holding the patch
    """
    arena = SubdivisionArena(radius)
    arena.add_point((0.0, 0.0, radius), tag_bit(2, 0) | tag_bit(2, 1), 0b101)
    arena.add_point((radius, 0.0, 0.0), tag_bit(0, 1) | tag_bit(0, 2), 0b011)
    arena.add_point((0.0, radius, 0.0), tag_bit(1, 0) | tag_bit(1, 2), 0b110)
    arena.subdivide_patch(0, 1, 2, subdivisions)
    return arena


def _quadrant_tags(size, boundary_tags):
    """
    Tag grid points of a square face by the diagonal quadrant they fall in.

    Args:
        size: Points per side (odd, so the center is a grid point)
        boundary_tags: Tags of the row-0, column-0, last-row and last-column
            boundaries

    Returns:
        Function (row, column) -> tag bitset; points on a diagonal get both
        neighbouring quadrants
    """
    first_row, first_col, last_row, last_col = boundary_tags
    middle = (size - 1) // 2

    def tags_at(r, q):
        x, y = q - middle, r - middle
        mask = 0
        if -y >= abs(x):
            mask |= first_row
        if -x >= abs(y):
            mask |= first_col
        if y >= abs(x):
            mask |= last_row
        if x >= abs(y):
            mask |= last_col
        return mask

    return tags_at


def _diagonal_flip(r, k):
    # quads on the main diagonal keep the default diagonal, all others flip
    return k != r


def sharp_cube_data(side=1.0):
    """
    The plain 8-vertex, 12-triangle cube, each corner tagged with the
    pairings of its three faces.
    """
    s = side / 2
    positions = np.array([
        [-s, -s, -s],
        [+s, -s, -s],
        [+s, +s, -s],
        [-s, +s, -s],
        [-s, -s, +s],
        [+s, -s, +s],
        [+s, +s, +s],
        [-s, +s, +s],
    ])

    triangles = np.array([
        # Bottom face (z = -s)
        [0, 3, 1],
        [1, 3, 2],
        # Top face (z = +s)
        [4, 5, 7],
        [5, 6, 7],
        # Front face (y = -s)
        [0, 1, 4],
        [1, 5, 4],
        # Back face (y = +s)
        [2, 3, 6],
        [3, 7, 6],
        # Left face (x = -s)
        [0, 4, 3],
        [3, 4, 7],
        # Right face (x = +s)
        [1, 2, 5],
        [2, 6, 5],
    ])

    tags = [face_pair_tags([face_id(axis, p[axis]) for axis in range(3)]) for p in positions]
    return MeshData(positions, orient_outward(positions, triangles), edge_tags=tags)


def sharp_grid_cube_data(side, bevel_width):
    """
    Sharp cube with a subdivided grid on every face so bucket seams and the
    bevel crease have vertices to follow. Faces do not share vertices.
    """
    s = side / 2
    count = fillet_rows(0.0, bevel_width, SHAPE_SHARP)
    stops = [0.0] + strip_fractions(count, bevel_width, 0.0, side) + [1.0]
    size = count + 2

    positions = []
    tags = []
    triangles = []
    for face in range(6):
        axis = face % 3
        sign = 1 if face < 3 else -1
        u, v = (axis + 1) % 3, (axis + 2) % 3
        tags_at = _quadrant_tags(size, (
            tag_bit(face, face_id(v, -1)),
            tag_bit(face, face_id(u, -1)),
            tag_bit(face, face_id(v, 1)),
            tag_bit(face, face_id(u, 1)),
        ))

        start = len(positions)
        rows = []
        for r, tv in enumerate(stops):
            row = []
            for q, tu in enumerate(stops):
                p = [0.0, 0.0, 0.0]
                p[axis] = sign * s
                p[u] = -s + 2 * s * tu
                p[v] = -s + 2 * s * tv
                positions.append(p)
                tags.append(tags_at(r, q))
                row.append(len(positions) - 1)
            rows.append(row)
        triangles.extend(grid_to_triangles(rows, _diagonal_flip))
        logger.debug(f"Face {face}: vertices {start}..{len(positions)}")

    return MeshData(positions, orient_outward(positions, triangles), edge_tags=tags)


def sphere_data(side):
    """
    Sphere of diameter side built from six poles and eight octant patches.

    Each pole carries its face's pairing with all four neighbouring faces.
    """
    s = side / 2
    arena = SubdivisionArena(s)
    poles = [((0.0, 0.0, s), 2), ((s, 0.0, 0.0), 0), ((0.0, s, 0.0), 1),
             ((0.0, 0.0, -s), 5), ((-s, 0.0, 0.0), 3), ((0.0, -s, 0.0), 4)]
    for point, face in poles:
        neighbours = [n for n in range(6) if n % 3 != face % 3]
        mask = 0
        for n in neighbours:
            mask |= tag_bit(face, n)
        arena.add_point(point, mask)

    subdivisions = patch_subdivisions(1.0)
    octants = [(0, 1, 2), (1, 3, 2), (3, 4, 2), (4, 0, 2),
               (1, 0, 5), (3, 1, 5), (4, 3, 5), (0, 4, 5)]
    for octant in octants:
        arena.subdivide_patch(*octant, subdivisions)

    return MeshData(arena.points, orient_outward(arena.points, arena.triangles), edge_tags=arena.tags)


def _replicate_corners(arena, offset):
    """Copy the corner patch to all eight corners; returns positions, tags, triangles."""
    local = np.asarray(arena.points) + offset
    patch_triangles = np.asarray(arena.triangles, dtype=np.int64)
    count = len(local)

    positions = []
    tags = []
    triangles = []
    for batch, matrix in enumerate(CORNER_TRANSFORMS):
        positions.extend(map(tuple, local @ matrix.T))
        tags.extend(transform_tags(matrix, mask) for mask in arena.tags)
        triangles.extend(map(tuple, patch_triangles + batch * count))
    return positions, tags, triangles


def _bridge(points, tags, row1, row2, fractions):
    """Grid of rows interpolated between two border rows; returns index rows."""
    rows = [list(row1)]
    for t in fractions:
        row = []
        for a, b in zip(row1, row2):
            points.append(lerp(points[a], points[b], t))
            tags.append(tags[a] & tags[b])
            row.append(len(points) - 1)
        rows.append(row)
    rows.append(list(row2))
    return rows


def _face_boundaries(columns):
    """
    Arrange the four fillet borders of a flat face as (row0, left, right, last):
    left and right start at row0's ends, last starts at left's end.
    """
    row0 = columns[0]
    rest = list(columns[1:])

    def take(endpoint):
        for column in rest:
            if column[0] == endpoint:
                rest.remove(column)
                return column
            if column[-1] == endpoint:
                rest.remove(column)
                return column[::-1]
        raise AssertionError(f"No face border starts at vertex {endpoint}")

    left = take(row0[0])
    right = take(row0[-1])
    last = rest[0] if rest[0][0] == left[-1] else rest[0][::-1]
    return row0, left, right, last


def rounded_body_data(side, roundedness, bevel_width):
    s = side / 2
    radius = roundedness * s
    offset = s - radius

    arena = corner_patch(radius, patch_subdivisions(roundedness))
    borders = [arena.border_row(0, 0), arena.border_row(1, 1), arena.border_row(2, 2)]
    patch_size = len(arena.points)

    points, tags, triangles = _replicate_corners(arena, offset)

    def row(batch, border, reverse=False):
        ids = [i + batch * patch_size for i in borders[border]]
        return ids[::-1] if reverse else ids

    count = fillet_rows(roundedness, bevel_width, SHAPE_ROUNDED)
    fractions = strip_fractions(count, bevel_width, radius, side)

    face_columns = {face: [] for face in range(6)}
    for turn in range(4):
        top0, bot0 = 2 * turn, 2 * turn + 1
        top1, bot1 = (2 * turn + 2) % 8, (2 * turn + 3) % 8
        fillets = [
            (row(top0, 0), row(bot0, 0, True)),   # vertical edge
            (row(top0, 1), row(top1, 2, True)),   # top edge
            (row(bot0, 2), row(bot1, 1, True)),   # bottom edge
        ]
        for row1, row2 in fillets:
            rows = _bridge(points, tags, row1, row2, fractions)
            triangles.extend(grid_to_triangles(rows))
            for column in ([r[0] for r in rows], [r[-1] for r in rows]):
                owner, _ = tag_parts(lowest_tag(tags[column[1]]))
                face_columns[owner].append(column)

    for face, columns in face_columns.items():
        row0, left, right, last = _face_boundaries(columns)
        before = len(points)
        rows = fill_grid(points, row0, last, left, right, fractions)
        tags_at = _quadrant_tags(len(row0), (tags[row0[1]], tags[left[1]], tags[last[1]], tags[right[1]]))
        tags.extend([0] * (len(points) - before))
        for r in range(1, len(rows) - 1):
            for q in range(1, len(rows[r]) - 1):
                tags[rows[r][q]] = tags_at(r, q)
        triangles.extend(grid_to_triangles(rows, _diagonal_flip))

    return MeshData(points, orient_outward(points, triangles), edge_tags=tags)


def rounded_cube_data(side=1.0, roundedness=0.15, bevel_width=0.0, splittable=False):
    """
    Build a cubie body.

    Args:
        side: Side length of the cube
        roundedness: Corner radius as a fraction of half the side (0 = sharp
            cube, 1 = sphere)
        bevel_width: Cosmetic bevel width; only moves fillet row spacing
        splittable: For sharp cubes, emit per-face grids (which the face
            splitter can partition) even without a bevel

    Returns:
        MeshData with outward-wound triangles and per-vertex edge tags
    """
    shape, r_pct = classify_roundedness(roundedness)

    if shape == SHAPE_SPHERE:
        body = sphere_data(side)
    elif shape == SHAPE_SHARP:
        if bevel_width > 0 or splittable:
            body = sharp_grid_cube_data(side, bevel_width)
        else:
            body = sharp_cube_data(side)
    else:
        body = rounded_body_data(side, r_pct, bevel_width)

    logger.debug(f"Cubie body ({shape}, r={r_pct}): {body.vertex_count} vertices, {body.triangle_count} triangles")
    return body
