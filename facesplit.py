"""
Split a tagged cubie body into independently colorable buckets, one per
visible face.

Edge cubies get 2 buckets, corner cubies 3; a 6-way split colors every face
of the cube separately. Each bucket is the set of edge tags whose region
belongs to that face's color; seams between buckets follow the tag regions,
so partially covered neighbouring faces are cut along their diagonals.
"""

import logging

from meshdata import MeshData
from edgetags import opposite, parse_face, tag_id, mask_to_tags, tags_to_mask

logger = logging.getLogger(__name__)

ALL_FACES = (0, 1, 2, 3, 4, 5)


def assert_adjacent_only(faces):
    """Raise ValueError if the faces repeat or include an opposite pair."""
    for i, a in enumerate(faces):
        for b in faces[i + 1:]:
            if a == b:
                raise ValueError(f"Face {a} requested twice")
            if b == opposite(a):
                raise ValueError(f"Faces {a} and {b} are opposite; no seam exists between them")


def _full_face(face):
    return [tag_id(face, a) for a in ALL_FACES if a != face and a != opposite(face)]


def split_cube2(x, y):
    """Buckets for an edge cubie showing faces x and y."""
    assert_adjacent_only([x, y])
    other = [a for a in ALL_FACES if a not in (x, y)]
    buckets = []
    for w, w2 in ((x, y), (y, x)):
        opp, opp2 = opposite(w), opposite(w2)
        tags = _full_face(w) + _full_face(opp2)
        a1, a2 = [a for a in other if a != opp and a != opp2]
        tags += [tag_id(a1, w), tag_id(a2, w), tag_id(a1, opp2), tag_id(a2, opp2)]
        buckets.append(tags_to_mask(tags))
    return buckets


def split_cube3(x, y, z):
    """Buckets for a corner cubie showing faces x, y and z."""
    faces = [x, y, z]
    assert_adjacent_only(faces)
    other = [a for a in ALL_FACES if a not in faces]
    buckets = []
    for w in faces:
        a1, a2 = [a for a in other if a != opposite(w)]
        tags = _full_face(w) + [tag_id(a1, w), tag_id(a2, w), tag_id(a1, a2), tag_id(a2, a1)]
        buckets.append(tags_to_mask(tags))
    return buckets


def split_cube6(faces):
    """One bucket per face, in the order given."""
    if sorted(faces) != list(ALL_FACES):
        raise ValueError(f"A 6-way split needs every face exactly once, got {faces}")
    return [tags_to_mask(_full_face(w)) for w in faces]


def face_split_buckets(faces):
    """Bucket tag bitsets for 2, 3 or 6 faces; None for any other count."""
    if len(faces) == 2:
        return split_cube2(*faces)
    if len(faces) == 3:
        return split_cube3(*faces)
    if len(faces) == 6:
        return split_cube6(faces)
    return None


def split_cube_face_data(body, faces):
    """
    Partition a tagged body mesh into face buckets.

    Args:
        body: MeshData with edge_tags
        faces: Face ids or R/U/F/L/D/B labels; 2, 3 or 6 of them

    Returns:
        MeshData with vertices duplicated per bucket and grouped contiguously
        by bucket (first-seen order), plus vertex_buckets and
        triangle_buckets. Any other face count returns body unchanged.

    Raises:
        ValueError: for opposite or repeated faces, or an untagged body
    """
    faces = [parse_face(f) for f in faces]
    buckets = face_split_buckets(faces)
    if buckets is None:
        return body
    if body.edge_tags is None:
        raise ValueError("Face split needs a body mesh with edge tags")

    bucket_of_tag = {}
    for n, mask in enumerate(buckets):
        for tag in mask_to_tags(mask):
            bucket_of_tag[tag] = n

    tags = [int(mask) for mask in body.edge_tags]
    vertex_sets = [
        sorted({bucket_of_tag[t] for t in mask_to_tags(mask) if t in bucket_of_tag})
        for mask in tags
    ]

    members = [[] for _ in buckets]
    for i, vertex_buckets in enumerate(vertex_sets):
        for b in vertex_buckets:
            members[b].append(i)

    new_index = {}
    order = []
    vertex_bucket_ids = []
    for b, ids in enumerate(members):
        for i in ids:
            new_index[(b, i)] = len(order)
            order.append(i)
            vertex_bucket_ids.append(b)

    triangles = []
    triangle_bucket_ids = []
    for tri in body.triangles:
        i, j, k = (int(v) for v in tri)
        bucket = None
        for tag in mask_to_tags(tags[i] & tags[j] & tags[k]):
            if tag in bucket_of_tag:
                bucket = bucket_of_tag[tag]
                break
        if bucket is None:
            shared = set(vertex_sets[i]) & set(vertex_sets[j]) & set(vertex_sets[k])
            if not shared:
                raise ValueError(f"Triangle ({i}, {j}, {k}) has no bucket common to its vertices")
            bucket = min(shared)
        triangles.append((new_index[(bucket, i)], new_index[(bucket, j)], new_index[(bucket, k)]))
        triangle_bucket_ids.append(bucket)

    logger.debug(f"Split {body.vertex_count} vertices into {len(buckets)} buckets "
                 f"({len(order)} vertices after seam duplication)")

    return MeshData(
        body.positions[order],
        triangles,
        edge_tags=[tags[i] for i in order],
        vertex_buckets=vertex_bucket_ids,
        triangle_buckets=triangle_bucket_ids,
    )
