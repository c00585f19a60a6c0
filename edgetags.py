"""
Cube face ids, edge tag bitsets and the eight corner transforms.

Face ids follow the axis order: 0 = +x (R), 1 = +y (U), 2 = +z (F),
3 = -x (L), 4 = -y (D), 5 = -z (B).

An edge tag is the pair (owner, neighbour) packed as owner * 6 + neighbour.
It marks the part of the owner face's region that lies toward the neighbour
face. A vertex owns a set of tags, stored as a 36-bit integer bitset.
"""

import numpy as np

FACE_RIGHT = 0
FACE_UP = 1
FACE_FRONT = 2
FACE_LEFT = 3
FACE_DOWN = 4
FACE_BACK = 5

FACE_LABELS = ['R', 'U', 'F', 'L', 'D', 'B']
FACE_IDS = {label: i for i, label in enumerate(FACE_LABELS)}

TAG_COUNT = 36


def opposite(face):
    return face + 3 if face < 3 else face - 3


def face_id(axis, side):
    """Face id for an axis index (0..2) and side (+1/-1)."""
    return axis if side > 0 else axis + 3


def face_axis_side(face):
    return face % 3, (1 if face < 3 else -1)


def parse_face(face):
    """Accept a face id or its R/U/F/L/D/B label."""
    if isinstance(face, str):
        try:
            return FACE_IDS[face.upper()]
        except KeyError:
            raise ValueError(f"Unknown face label: {face}")
    face = int(face)
    if not 0 <= face < 6:
        raise ValueError(f"Face id out of range: {face}")
    return face


def tag_id(owner, neighbour):
    return owner * 6 + neighbour


def tag_parts(tag):
    return divmod(tag, 6)


def tag_bit(owner, neighbour):
    return 1 << tag_id(owner, neighbour)


def tags_to_mask(tags):
    mask = 0
    for tag in tags:
        mask |= 1 << tag
    return mask


def mask_to_tags(mask):
    """Tag ids contained in a bitset, in increasing order."""
    mask = int(mask)
    tags = []
    while mask:
        low = mask & -mask
        tags.append(low.bit_length() - 1)
        mask ^= low
    return tags


def lowest_tag(mask):
    mask = int(mask)
    return (mask & -mask).bit_length() - 1 if mask else None


def face_pair_tags(faces):
    """All (owner, neighbour) tags between distinct faces of a vertex."""
    mask = 0
    for owner in faces:
        for neighbour in faces:
            if owner != neighbour:
                mask |= tag_bit(owner, neighbour)
    return mask


def consistent_tags(mask):
    """
    Keep only the tags whose two faces both own a tag in mask.

    Used for centroid-level points, which sit between several seed points and
    must not pick up pairings with faces none of them border.
    """
    tags = mask_to_tags(mask)
    owners = {tag_parts(tag)[0] for tag in tags}
    kept = 0
    for tag in tags:
        owner, neighbour = tag_parts(tag)
        if owner in owners and neighbour in owners:
            kept |= 1 << tag
    return kept


# Tags a seed corner patch may carry: pairings among faces +x, +y, +z
SEED_TAGS = (1, 2, 6, 8, 12, 13)
SEED_MASK = tags_to_mask(SEED_TAGS)


# Signed permutation matrices taking the (+,+,+) corner to all eight corners.
# Order: top, bottom, then both again after each quarter turn about +y.
CORNER_TRANSFORMS = (
    np.array([[1, 0, 0], [0, 1, 0], [0, 0, 1]]),
    np.array([[0, 0, 1], [0, -1, 0], [1, 0, 0]]),
    np.array([[0, 0, 1], [0, 1, 0], [-1, 0, 0]]),
    np.array([[1, 0, 0], [0, -1, 0], [0, 0, -1]]),
    np.array([[-1, 0, 0], [0, 1, 0], [0, 0, -1]]),
    np.array([[0, 0, -1], [0, -1, 0], [-1, 0, 0]]),
    np.array([[0, 0, -1], [0, 1, 0], [1, 0, 0]]),
    np.array([[-1, 0, 0], [0, -1, 0], [0, 0, 1]]),
)


def transform_face(matrix, face):
    """Face id that face maps to under a signed permutation matrix."""
    axis, side = face_axis_side(face)
    column = matrix[:, axis] * side
    new_axis = int(np.nonzero(column)[0][0])
    return face_id(new_axis, column[new_axis])


def transform_tags(matrix, mask):
    """Remap a seed-patch tag bitset through a corner transform."""
    assert mask & ~SEED_MASK == 0, f"Tag set {mask:#x} outside the seed patch tags"
    result = 0
    for tag in mask_to_tags(mask):
        owner, neighbour = tag_parts(tag)
        result |= tag_bit(transform_face(matrix, owner), transform_face(matrix, neighbour))
    return result
