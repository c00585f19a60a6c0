"""
Indexed triangle mesh container and triangulation helpers shared by the
sticker, cubie and puzzle builders.

A MeshData holds a flat array of vertex positions, a flat array of triangle
index triples and the optional per-vertex channels the builders produce
(normal overrides, face widths, edge tags, bucket ids, colors and part
labels). It converts to a numpy-stl mesh for export and to a plain dict for
JSON responses.

Requires: numpy, numpy-stl
"""

import io
import math
import logging

import numpy as np
from stl import mesh, Mode

logger = logging.getLogger(__name__)


# Roundedness below/above these thresholds snaps to sharp/circular
ROUNDEDNESS_MIN = 0.01
ROUNDEDNESS_MAX = 0.99


def clamp_roundedness(roundedness):
    """Snap a roundedness slider value to 0 (sharp) or 1 (full circle) near the ends."""
    if roundedness > ROUNDEDNESS_MAX:
        return 1.0
    if roundedness < ROUNDEDNESS_MIN:
        return 0.0
    return float(roundedness)


def round_half_up(value):
    """Round .5 away from zero for positive values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def lerp(p1, p2, t):
    return (
        p1[0] + (p2[0] - p1[0]) * t,
        p1[1] + (p2[1] - p1[1]) * t,
        p1[2] + (p2[2] - p1[2]) * t,
    )


def split_fractions(subdivisions):
    """
    Normalize an edge subdivision request to a list of split fractions.

    Args:
        subdivisions: None, an int count of evenly spaced points, or a
            sequence of explicit fractions in (0, 1)

    Returns:
        List of fractions (empty when no subdivision is requested)
    """
    if subdivisions is None:
        return []
    if isinstance(subdivisions, int):
        return [(i + 1) / (subdivisions + 1) for i in range(subdivisions)]
    return [float(f) for f in subdivisions]


def strip_to_triangles(row1, row2, flip=None):
    """
    Triangulate the band between two equal-length index rows.

    Each quad (row1[k], row1[k+1], row2[k], row2[k+1]) is split along the
    row1[k]-row2[k+1] diagonal, or along row1[k+1]-row2[k] where flip(k) is
    true. The resulting normals point along v x u, where u runs along the rows
    and v runs from row1 to row2.
    """
    triangles = []
    for k in range(len(row1) - 1):
        a, b = row1[k], row1[k + 1]
        c, d = row2[k], row2[k + 1]
        if flip is not None and flip(k):
            triangles.append((a, c, b))
            triangles.append((b, c, d))
        else:
            triangles.append((a, c, d))
            triangles.append((a, d, b))
    return triangles


def ring_to_triangles(ring1, ring2):
    """Triangulate the closed band between two counter-clockwise index rings."""
    return strip_to_triangles(list(ring1) + [ring1[0]], list(ring2) + [ring2[0]])


def fan_to_triangles(hub, rim, closed=False):
    """Triangle fan from a hub index over a counter-clockwise rim."""
    rim = list(rim)
    if closed:
        rim.append(rim[0])
    return [(hub, rim[k], rim[k + 1]) for k in range(len(rim) - 1)]


def grid_to_triangles(rows, flip=None):
    """
    Triangulate consecutive rows of an index grid.

    Args:
        rows: list of equal-length index rows
        flip: optional callable (row_index, column_index) -> bool choosing the
            alternate quad diagonal
    """
    triangles = []
    for r in range(len(rows) - 1):
        row_flip = None if flip is None else (lambda k, r=r: flip(r, k))
        triangles.extend(strip_to_triangles(rows[r], rows[r + 1], row_flip))
    return triangles


def fill_grid(points, row0, last, left, right, fractions):
    """
    Close a four-sided patch with a grid of interpolated interior points.

    row0 and last are opposite boundaries running in the same direction; left
    and right run from row0's ends to last's ends. Interior row j lies at
    fractions[j - 1] between row0 and last. New positions are appended to
    points.

    Returns:
        List of index rows from row0 to last
    """
    rows = [list(row0)]
    for j, t in enumerate(fractions, start=1):
        row = [left[j]]
        for k in range(1, len(row0) - 1):
            points.append(lerp(points[row0[k]], points[last[k]], t))
            row.append(len(points) - 1)
        row.append(right[j])
        rows.append(row)
    rows.append(list(last))
    return rows


def orient_outward(positions, triangles, center=(0.0, 0.0, 0.0)):
    """
    Flip triangles whose normal points toward center.

    Only valid for convex (star-shaped about center) closed surfaces such as
    the cubie body.
    """
    positions = np.asarray(positions, dtype=np.float64)
    triangles = np.array(triangles, dtype=np.int64).reshape(-1, 3)
    if len(triangles) == 0:
        return triangles
    v0 = positions[triangles[:, 0]]
    v1 = positions[triangles[:, 1]]
    v2 = positions[triangles[:, 2]]
    normals = np.cross(v1 - v0, v2 - v0)
    centroids = (v0 + v1 + v2) / 3.0 - np.asarray(center, dtype=np.float64)
    inward = np.einsum('ij,ij->i', normals, centroids) < 0
    triangles[inward] = triangles[inward][:, [0, 2, 1]]
    return triangles


class MeshData:
    """Indexed triangle mesh plus optional per-vertex channels."""

    def __init__(self, positions, triangles, normal_overrides=None, face_widths=None,
                 edge_tags=None, vertex_buckets=None, triangle_buckets=None, colors=None,
                 part_labels=None):
        self.positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        self.triangles = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)
        self.normal_overrides = dict(normal_overrides or {})
        self.face_widths = None if face_widths is None else np.asarray(face_widths, dtype=np.float64)
        self.edge_tags = None if edge_tags is None else np.asarray(edge_tags, dtype=np.int64)
        self.vertex_buckets = None if vertex_buckets is None else np.asarray(vertex_buckets, dtype=np.int64)
        self.triangle_buckets = None if triangle_buckets is None else np.asarray(triangle_buckets, dtype=np.int64)
        self.colors = None if colors is None else np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        self.part_labels = None if part_labels is None else np.asarray(part_labels, dtype=np.int64)

    @property
    def vertex_count(self):
        return len(self.positions)

    @property
    def triangle_count(self):
        return len(self.triangles)

    def __repr__(self):
        return f"MeshData(vertices={self.vertex_count}, triangles={self.triangle_count})"

    def replace(self, **changes):
        """Return a copy with some attributes replaced."""
        attrs = {
            'positions': self.positions,
            'triangles': self.triangles,
            'normal_overrides': self.normal_overrides,
            'face_widths': self.face_widths,
            'edge_tags': self.edge_tags,
            'vertex_buckets': self.vertex_buckets,
            'triangle_buckets': self.triangle_buckets,
            'colors': self.colors,
            'part_labels': self.part_labels,
        }
        attrs.update(changes)
        return MeshData(**attrs)

    def copy(self):
        """Deep copy; no arrays are shared with the original."""
        def dup(values):
            return None if values is None else values.copy()

        return MeshData(
            self.positions.copy(),
            self.triangles.copy(),
            normal_overrides={i: tuple(n) for i, n in self.normal_overrides.items()},
            face_widths=dup(self.face_widths),
            edge_tags=dup(self.edge_tags),
            vertex_buckets=dup(self.vertex_buckets),
            triangle_buckets=dup(self.triangle_buckets),
            colors=dup(self.colors),
            part_labels=dup(self.part_labels),
        )

    def translated(self, offset):
        return self.replace(positions=self.positions + np.asarray(offset, dtype=np.float64))

    def face_normals(self):
        """Unnormalized triangle normals (length = 2x triangle area)."""
        v = self.positions[self.triangles]
        return np.cross(v[:, 1] - v[:, 0], v[:, 2] - v[:, 0])

    def vertex_normals(self):
        """
        Per-vertex normals from area-weighted adjacent triangle normals, with
        explicit overrides applied on top.
        """
        normals = np.zeros_like(self.positions)
        face_normals = self.face_normals()
        for j in range(3):
            np.add.at(normals, self.triangles[:, j], face_normals)

        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        lengths[lengths == 0] = 1.0
        normals = normals / lengths

        for index, normal in self.normal_overrides.items():
            normals[index] = normal
        return normals

    def edge_use_counts(self):
        """Map each undirected edge (i, j), i < j, to the number of triangles using it."""
        edges = np.concatenate([
            self.triangles[:, [0, 1]],
            self.triangles[:, [1, 2]],
            self.triangles[:, [2, 0]],
        ])
        edges = np.sort(edges, axis=1)
        unique, counts = np.unique(edges, axis=0, return_counts=True)
        return {(int(a), int(b)): int(n) for (a, b), n in zip(unique, counts)}

    def is_closed(self):
        """True if every undirected edge borders exactly two triangles."""
        return all(n == 2 for n in self.edge_use_counts().values())

    def bucket_ranges(self):
        """Contiguous (start, stop) vertex ranges per bucket id."""
        if self.vertex_buckets is None:
            return [(0, self.vertex_count)]
        ranges = []
        for bucket in range(int(self.vertex_buckets.max()) + 1 if self.vertex_count else 0):
            where = np.nonzero(self.vertex_buckets == bucket)[0]
            ranges.append((int(where[0]), int(where[-1]) + 1) if len(where) else (0, 0))
        return ranges

    def to_stl(self):
        """Convert to a numpy-stl Mesh (one facet per triangle)."""
        stl_mesh = mesh.Mesh(np.zeros(self.triangle_count, dtype=mesh.Mesh.dtype))
        stl_mesh.vectors = self.positions[self.triangles].astype(np.float32)
        stl_mesh.update_normals()
        return stl_mesh

    def save_stl(self, path, ascii=False):
        stl_mesh = self.to_stl()
        if ascii:
            stl_mesh.save(path, mode=Mode.ASCII)
        else:
            stl_mesh.save(path)
        logger.info(f"Saved {self.triangle_count} triangles to {path}")

    def stl_bytes(self, name='mesh.stl', ascii=False):
        """Serialize to STL in memory; name goes into the file header."""
        buffer = io.BytesIO()
        mode = Mode.ASCII if ascii else Mode.BINARY
        self.to_stl().save(name, fh=buffer, mode=mode)
        return buffer.getvalue()

    def to_dict(self, include_normals=True):
        """JSON-serializable representation."""
        data = {
            'vertex_count': self.vertex_count,
            'triangle_count': self.triangle_count,
            'positions': self.positions.tolist(),
            'triangles': self.triangles.tolist(),
        }
        if include_normals:
            data['normals'] = self.vertex_normals().tolist()
        if self.face_widths is not None:
            data['face_widths'] = self.face_widths.tolist()
        if self.edge_tags is not None:
            data['edge_tags'] = self.edge_tags.tolist()
        if self.vertex_buckets is not None:
            data['vertex_buckets'] = self.vertex_buckets.tolist()
        if self.triangle_buckets is not None:
            data['triangle_buckets'] = self.triangle_buckets.tolist()
        if self.colors is not None:
            data['colors'] = self.colors.tolist()
        if self.part_labels is not None:
            data['part_labels'] = self.part_labels.tolist()
        return data


def merge_meshes(meshes):
    """
    Concatenate meshes into one, offsetting triangle indices.

    Per-vertex channels are kept only when every input carries them.
    """
    meshes = list(meshes)
    if not meshes:
        return MeshData(np.zeros((0, 3)), np.zeros((0, 3), dtype=np.int64))

    positions = []
    triangles = []
    overrides = {}
    offset = 0
    for part in meshes:
        positions.append(part.positions)
        triangles.append(part.triangles + offset)
        for index, normal in part.normal_overrides.items():
            overrides[index + offset] = normal
        offset += part.vertex_count

    def channel(name):
        values = [getattr(part, name) for part in meshes]
        if any(v is None for v in values):
            return None
        return np.concatenate(values)

    return MeshData(
        np.concatenate(positions),
        np.concatenate(triangles),
        normal_overrides=overrides,
        face_widths=channel('face_widths'),
        edge_tags=channel('edge_tags'),
        colors=channel('colors'),
        part_labels=channel('part_labels'),
    )
