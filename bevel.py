"""
Cosmetic bevel: reshape vertices near a cubie's outward edges so the whole
puzzle reads as having a large chamfer.

Both variants only move vertices; the mesh topology is unchanged. Positions
are expected in cubie space (unit cubie centered on the origin), before the
cubie is translated to its place in the puzzle.
"""

import math
import logging

import numpy as np

logger = logging.getLogger(__name__)

HALF_SIDE = 0.5
DIAG = math.sqrt(2) / 2
MIN_BEVEL = 0.01

# (x, y, z, direction): rotate about z, clamp y; x and y gate the rotations
_AXIS_GROUPS = ((0, 1, 2, 1), (2, 0, 1, 1), (2, 1, 0, -1))


def bevel_actions(block_pos):
    """
    Planar rotations that bring each beveled edge of a cubie into the
    canonical frame.

    Args:
        block_pos: Integer grid position, each coordinate in {-1, 0, 1}

    Returns:
        List of (clamp axis, rotation axis, angle in degrees)
    """
    actions = []
    for x, y, z, direction in _AXIS_GROUPS:
        if not block_pos[z]:
            continue
        px, py = block_pos[x], block_pos[y]
        gates = (
            (px < 1 and py < 1, 45),
            (px < 1 and py > -1, 135),
            (px > -1 and py > -1, 225),
            (px > -1 and py < 1, 315),
        )
        for active, angle in gates:
            if active:
                actions.append((y, z, direction * angle))
    return actions


def rotation_matrix(axis, degrees):
    """Right-handed rotation about a coordinate axis."""
    th = math.radians(degrees)
    c, s = math.cos(th), math.sin(th)
    if axis == 0:
        return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])
    if axis == 1:
        return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])


def _bevel_height(bevel_width):
    return DIAG - math.sqrt(bevel_width ** 2 / 2)


def add_bevel(bevel_width, roundedness, block_pos, positions):
    """
    Bevel a cubie body.

    The clamp plane fades in with depth: vertices near the cubie's inner side
    stay put, vertices past bevel_width from it are fully chamfered. Where the
    chamfer plane meets the outer face it is rounded with a fillet of radius
    min(roundedness, 0.5) * 0.5.

    Args:
        bevel_width: Bevel width (below 0.01 disables the bevel)
        roundedness: Body corner roundedness
        block_pos: Cubie grid position
        positions: (N, 3) vertex positions

    Returns:
        New (N, 3) array of positions
    """
    positions = np.asarray(positions, dtype=np.float64)
    actions = bevel_actions(block_pos)
    if bevel_width < MIN_BEVEL or not actions:
        return positions.copy()

    fillet_r = min(roundedness, 0.5) * HALF_SIDE
    h = _bevel_height(bevel_width)
    result = positions.copy()

    for iy, iz, angle in actions:
        rotation = rotation_matrix(iz, angle)
        sign = 1 if block_pos[iz] > 0 else -1
        q = result @ rotation.T

        depth = np.minimum(1.0, (positions[:, iz] * sign + HALF_SIDE) / bevel_width)
        q[:, iy] = np.minimum(q[:, iy], DIAG + depth * (h - DIAG))

        fy = q[:, iy] - h + fillet_r
        fz = q[:, iz] * sign - HALF_SIDE + fillet_r
        arc = np.sqrt(np.maximum(fillet_r ** 2 - fz ** 2, 0.0))
        on_fillet = (fy > 0) & (fz > 0)
        q[:, iy] = np.where(on_fillet, np.minimum(fy, arc) + h - fillet_r, q[:, iy])

        result = q @ rotation

    logger.debug(f"Beveled body at {tuple(block_pos)} with {len(actions)} rotations")
    return result


def add_face_bevel(bevel_width, block_pos, positions, face_widths):
    """
    Bevel sticker geometry so it follows the body bevel.

    The clamp height scales with each vertex's face width, so narrow ring
    regions are cut proportionally less.
    """
    positions = np.asarray(positions, dtype=np.float64)
    actions = bevel_actions(block_pos)
    if bevel_width < MIN_BEVEL or not actions:
        return positions.copy()

    limit = _bevel_height(bevel_width) * 2 * np.asarray(face_widths, dtype=np.float64)
    result = positions.copy()
    for iy, iz, angle in actions:
        rotation = rotation_matrix(iz, angle)
        q = result @ rotation.T
        q[:, iy] = np.minimum(q[:, iy], limit)
        result = q @ rotation
    return result
