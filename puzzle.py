"""
Puzzle assembly: geometry configuration, presets, color schemes, and the
builders that turn them into cubie and full-puzzle meshes.

A cubie at integer grid position (x, y, z), each in {-1, 0, 1}, shows one
face per nonzero coordinate. Its body is built once per configuration,
optionally split into per-face color buckets (stickerless mode) and beveled
for its position; one sticker is laid on each exposed face.
"""

import itertools
import logging
from functools import lru_cache

import numpy as np

from meshdata import merge_meshes
from edgetags import FACE_LABELS, face_axis_side, face_id
from cubie import rounded_cube_data
from sticker import extruded_ring_data
from facesplit import split_cube_face_data
from bevel import add_bevel, add_face_bevel, rotation_matrix

logger = logging.getLogger(__name__)

# Block types
BLOCK_STICKERED = 'stickered'
BLOCK_STICKERLESS = 'stickerless'
BLOCK_TYPES = [BLOCK_STICKERED, BLOCK_STICKERLESS]

# Part labels in assembled meshes
PART_BODY = 0
PART_STICKER = 1

PARTS = ['body', 'sticker', 'cubie', 'puzzle']

CUBIE_SIDE = 1.0
MIN_SPREAD = 1.001

# Per-face RGB colors, keyed by face label
COLOR_SCHEMES = {
    'classic': {
        'L': (0.70, 0.30, 0.00), 'R': (0.60, 0.00, 0.10), 'D': (0.90, 0.90, 0.15),
        'U': (0.85, 0.88, 0.90), 'B': (0.00, 0.20, 0.55), 'F': (0.00, 0.45, 0.22),
    },
    'bright': {
        'L': (0.90, 0.42, 0.10), 'R': (0.81, 0.39, 0.58), 'D': (0.95, 0.90, 0.20),
        'U': (0.85, 0.85, 0.85), 'B': (0.24, 0.62, 0.81), 'F': (0.45, 0.75, 0.15),
    },
    'neutral': {
        'L': (0.898, 0.459, 0.122), 'R': (0.878, 0.141, 0.267), 'D': (0.929, 0.929, 0.269),
        'U': (0.878, 0.878, 0.878), 'B': (0.051, 0.435, 0.729), 'F': (0.031, 0.667, 0.161),
    },
    'pastel': {
        'L': (0.961, 0.701, 0.456), 'R': (0.923, 0.621, 0.601), 'D': (0.960, 0.903, 0.549),
        'U': (0.973, 0.933, 0.902), 'B': (0.552, 0.790, 0.885), 'F': (0.592, 0.885, 0.750),
    },
}

# Body colors for stickered cubies
SOLID_COLORS = {
    'bl': (0.08, 0.08, 0.08),
    'st': (0.42, 0.42, 0.42),
    'si': (0.594, 0.588, 0.576),
    'go': (0.6, 0.54, 0.36),
    'rg': (0.6, 0.42, 0.36),
}

DEFAULTS = {
    'spread': 1.0,
    'block_r': 0.15,
    'bevel_w': 0.0,
    'face_cover': 0.85,
    'face_r': 0.15,
    'face_edge_r': 0.5,
    'face_ring_w': 1.0,
    'face_extrude': 0.005,
    'block_type': BLOCK_STICKERED,
    'add_stickers': False,
    'color_scheme': 'classic',
    'body_color': 'bl',
}

PRESETS = {
    'default': {},
    'classic1': {
        'spread': 1.025, 'block_r': 0.15, 'bevel_w': 0.0, 'face_cover': 0.85, 'face_r': 0.15,
        'face_edge_r': 0.5, 'face_ring_w': 1.0, 'face_extrude': 0.005,
        'block_type': BLOCK_STICKERED, 'add_stickers': True,
    },
    'classic2': {
        'spread': 1.0, 'block_r': 0.1, 'bevel_w': 0.2, 'face_cover': 0.95, 'face_r': 0.1,
        'face_edge_r': 0.5, 'face_ring_w': 1.0, 'face_extrude': 0.005,
        'block_type': BLOCK_STICKERED, 'add_stickers': True,
    },
    'reverse': {
        'spread': 1.025, 'block_r': 0.15, 'bevel_w': 0.0,
        'block_type': BLOCK_STICKERLESS, 'add_stickers': True,
    },
    'reverse2': {
        'spread': 1.0, 'block_r': 0.1, 'bevel_w': 0.2, 'face_cover': 0.95, 'face_r': 0.1,
        'block_type': BLOCK_STICKERLESS, 'add_stickers': True,
    },
    'toy': {
        'spread': 1.0, 'block_r': 0.15, 'bevel_w': 0.15,
        'block_type': BLOCK_STICKERLESS, 'add_stickers': False,
    },
    'precious': {
        'spread': 1.05, 'block_r': 0.1, 'bevel_w': 0.0, 'face_cover': 0.85, 'face_r': 1.0,
        'face_edge_r': 1.0, 'face_ring_w': 0.35, 'face_extrude': 0.07,
        'block_type': BLOCK_STICKERED, 'add_stickers': True,
    },
    'bubble': {
        'spread': 1.0, 'block_r': 1.0, 'bevel_w': 0.0,
        'block_type': BLOCK_STICKERLESS, 'add_stickers': False,
    },
    'retro1': {
        'spread': 1.0, 'block_r': 0.25, 'bevel_w': 0.0, 'face_cover': 0.9, 'face_r': 0.4,
        'face_edge_r': 0.5, 'face_ring_w': 0.35, 'face_extrude': 0.02,
        'block_type': BLOCK_STICKERED, 'add_stickers': True,
    },
}


def get_preset(name):
    """Full parameter dict for a named preset (defaults filled in)."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Available: {', '.join(PRESETS)}")
    params = dict(DEFAULTS)
    params.update(PRESETS[name])
    return params


class GeoConfig:
    """Geometry parameters for one puzzle build."""

    def __init__(self, spread=1.0, block_r=0.15, bevel_w=0.0, face_cover=0.85, face_r=0.15,
                 face_edge_r=0.5, face_ring_w=1.0, face_extrude=0.005,
                 block_type=BLOCK_STICKERED, add_stickers=False,
                 color_scheme='classic', body_color='bl'):
        if block_type not in BLOCK_TYPES:
            raise ValueError(f"Invalid block type: {block_type}. Must be one of {BLOCK_TYPES}")
        if color_scheme not in COLOR_SCHEMES:
            raise ValueError(f"Unknown color scheme: {color_scheme}")
        if body_color not in SOLID_COLORS:
            raise ValueError(f"Unknown body color: {body_color}")

        self.spread = float(spread)
        self.block_r = float(block_r)
        self.bevel_w = float(bevel_w)
        self.face_cover = float(face_cover)
        self.face_r = float(face_r)
        self.face_edge_r = float(face_edge_r)
        self.face_ring_w = float(face_ring_w)
        self.face_extrude = float(face_extrude)
        self.block_type = block_type
        self.add_stickers = bool(add_stickers)
        self.color_scheme = color_scheme
        self.body_color = body_color

    @classmethod
    def from_preset(cls, name, **overrides):
        params = get_preset(name)
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)

    @property
    def stickerless(self):
        return self.block_type == BLOCK_STICKERLESS

    @property
    def face_cover_adj(self):
        """Sticker side length after leaving room for the body's rounded edges."""
        return self.face_cover * (1 - self.block_r)

    @property
    def effective_spread(self):
        return max(self.spread, MIN_SPREAD)

    @property
    def cube_radius(self):
        return 0.5 * (3 + 2 * (self.spread - 1))

    def to_dict(self):
        return {
            'spread': self.spread,
            'block_r': self.block_r,
            'bevel_w': self.bevel_w,
            'face_cover': self.face_cover,
            'face_r': self.face_r,
            'face_edge_r': self.face_edge_r,
            'face_ring_w': self.face_ring_w,
            'face_extrude': self.face_extrude,
            'block_type': self.block_type,
            'add_stickers': self.add_stickers,
            'color_scheme': self.color_scheme,
            'body_color': self.body_color,
        }

    def __repr__(self):
        return f"GeoConfig({self.to_dict()})"


def face_colors(scheme):
    """RGB color per face id for a color scheme."""
    colors = COLOR_SCHEMES[scheme]
    return np.array([colors[label] for label in FACE_LABELS], dtype=np.float64)


def exposed_faces(position):
    """
    Face ids a cubie shows, in axis order.

    The center cubie (0, 0, 0) reports all six faces.
    """
    faces = [face_id(axis, p) for axis, p in enumerate(position) if p != 0]
    return faces if faces else [0, 1, 2, 3, 4, 5]


def orient_face(vertices, axis, side):
    """
    Rotate geometry built facing +z onto the cube face (axis, side).

    Args:
        vertices: (N, 3) positions or normals
        axis: 0, 1 or 2
        side: +1 or -1

    Returns:
        New (N, 3) array
    """
    vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    if axis == 2 and side > 0:
        return vertices.copy()

    rotation_axis = 0 if axis == 1 else 1
    if axis == 2:
        angle = 180
    elif (axis == 0 and side < 0) or (axis == 1 and side > 0):
        angle = -90
    else:
        angle = 90
    return vertices @ rotation_matrix(rotation_axis, angle).T


def _cubie_position(position):
    position = tuple(position)
    if len(position) != 3 or any(p not in (-1, 0, 1) for p in position):
        raise ValueError(f"Cubie position must be three values in -1, 0, 1; got {position}")
    return tuple(int(p) for p in position)


@lru_cache(maxsize=32)
def _body_template(block_r, bevel_w, splittable):
    return rounded_cube_data(CUBIE_SIDE, block_r, bevel_w, splittable)


@lru_cache(maxsize=32)
def _sticker_template(face_cover_adj, face_r, face_ring_w, face_extrude, face_edge_r, bevel_w):
    return extruded_ring_data(face_cover_adj, CUBIE_SIDE / 2, face_r, face_ring_w,
                              face_extrude, face_edge_r, bevel_w)


def build_body(config, position):
    """
    Cubie body for a grid position.

    In stickerless mode the body is split by the cubie's exposed faces; the
    returned mesh always carries vertex and triangle bucket ids, where bucket
    n belongs to exposed_faces(position)[n].
    """
    position = _cubie_position(position)
    body = _body_template(config.block_r, config.bevel_w, config.stickerless).copy()

    if config.stickerless:
        body = split_cube_face_data(body, exposed_faces(position))
    if body.vertex_buckets is None:
        body = body.replace(
            vertex_buckets=np.zeros(body.vertex_count, dtype=np.int64),
            triangle_buckets=np.zeros(body.triangle_count, dtype=np.int64),
        )

    positions = add_bevel(config.bevel_w, config.block_r, position, body.positions)
    return body.replace(positions=positions)


def build_stickers(config, position):
    """
    Stickers for a grid position, one per exposed face.

    Returns:
        List of (face id, MeshData); empty when stickers are disabled
    """
    position = _cubie_position(position)
    if not config.add_stickers:
        return []

    template = _sticker_template(config.face_cover_adj, config.face_r, config.face_ring_w,
                                 config.face_extrude, config.face_edge_r, config.bevel_w)
    stickers = []
    for face in exposed_faces(position):
        axis, side = face_axis_side(face)
        positions = orient_face(template.positions, axis, side)
        positions = add_face_bevel(config.bevel_w, position, positions, template.face_widths)

        overrides = {}
        if template.normal_overrides:
            indices = list(template.normal_overrides)
            normals = orient_face([template.normal_overrides[i] for i in indices], axis, side)
            overrides = {i: tuple(n) for i, n in zip(indices, normals)}

        stickers.append((face, template.copy().replace(positions=positions, normal_overrides=overrides)))
    return stickers


def build_cubie(config, position):
    """Body and stickers of one cubie merged into a colored mesh with part labels."""
    position = _cubie_position(position)
    colors = face_colors(config.color_scheme)
    faces = np.array(exposed_faces(position))

    body = build_body(config, position)
    if config.stickerless:
        body_colors = colors[faces[body.vertex_buckets]]
    else:
        body_colors = np.tile(SOLID_COLORS[config.body_color], (body.vertex_count, 1))
    parts = [body.replace(colors=body_colors,
                          part_labels=np.full(body.vertex_count, PART_BODY))]

    for face, sticker in build_stickers(config, position):
        parts.append(sticker.replace(
            colors=np.tile(colors[face], (sticker.vertex_count, 1)),
            part_labels=np.full(sticker.vertex_count, PART_STICKER),
        ))

    return merge_meshes(parts)


def build_puzzle(config):
    """
    Assemble all 27 cubies, each translated to position * spread.

    Returns:
        Merged MeshData with colors and part labels
    """
    spread = config.effective_spread
    cubies = []
    for position in itertools.product((-1, 0, 1), repeat=3):
        cubie = build_cubie(config, position)
        cubies.append(cubie.translated(np.array(position, dtype=np.float64) * spread))

    puzzle = merge_meshes(cubies)
    logger.info(f"Built puzzle: {puzzle.vertex_count} vertices, {puzzle.triangle_count} triangles")
    return puzzle


def build_part(config, part, position=(1, 1, 1)):
    """
    Build a named part.

    Args:
        config: GeoConfig
        part: 'body', 'sticker', 'cubie' or 'puzzle'
        position: Cubie grid position (ignored for 'puzzle')

    Returns:
        MeshData; for 'sticker', the sticker on the cubie's first exposed
        face, built even when the configuration has stickers disabled
    """
    if part == 'body':
        return build_body(config, position)
    if part == 'sticker':
        params = config.to_dict()
        params['add_stickers'] = True
        _, sticker = build_stickers(GeoConfig(**params), position)[0]
        return sticker
    if part == 'cubie':
        return build_cubie(config, position)
    if part == 'puzzle':
        return build_puzzle(config)
    raise ValueError(f"Unknown part: {part}. Must be one of {PARTS}")
