#!/usr/bin/env python3
"""
Command-line generator for cube-puzzle meshes.

Builds a cubie body, a sticker, a complete cubie or the whole 3x3x3 puzzle
from a preset plus optional shape overrides, and writes it as STL (binary or
ASCII) or as JSON.
"""

import argparse
import json
import sys

from puzzle import (
    GeoConfig,
    PARTS,
    PRESETS,
    COLOR_SCHEMES,
    SOLID_COLORS,
    BLOCK_STICKERLESS,
    build_part,
)

# Option name -> GeoConfig field, for the [0, 1] fraction options
FRACTION_OPTIONS = {
    'roundedness': 'block_r',
    'bevel_width': 'bevel_w',
    'face_cover': 'face_cover',
    'face_radius': 'face_r',
    'face_edge_radius': 'face_edge_r',
    'ring_width': 'face_ring_w',
}


def build_config(args):
    """
    Turn parsed arguments into a GeoConfig.

    Raises:
        ValueError: for out-of-range values or an unknown preset
    """
    overrides = {}
    for option, field in FRACTION_OPTIONS.items():
        value = getattr(args, option)
        if value is None:
            continue
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"--{option.replace('_', '-')} must be between 0 and 1")
        overrides[field] = value

    if args.extrude is not None:
        if not 0.0 <= args.extrude <= 0.5:
            raise ValueError("--extrude must be between 0 and 0.5")
        overrides['face_extrude'] = args.extrude
    if args.spread is not None:
        if not 1.0 <= args.spread <= 2.0:
            raise ValueError("--spread must be between 1 and 2")
        overrides['spread'] = args.spread
    if args.stickerless:
        overrides['block_type'] = BLOCK_STICKERLESS
    if args.stickers:
        overrides['add_stickers'] = True
    if args.no_stickers:
        overrides['add_stickers'] = False
    overrides['color_scheme'] = args.colors
    overrides['body_color'] = args.body_color

    return GeoConfig.from_preset(args.preset, **overrides)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Generate cube-puzzle geometry (cubie bodies, stickers, whole puzzles)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Parts:
  body      - Rounded cubie body (split into face buckets when stickerless)
  sticker   - Sticker for the first exposed face of the cubie
  cubie     - Body plus stickers for one grid position
  puzzle    - All 27 cubies, spread apart

Examples:
  %(prog)s cubie -o corner.stl
  %(prog)s body --roundedness 0.3 --bevel-width 0.2 --position 1 1 0
  %(prog)s sticker --preset precious --ascii -o sticker.stl
  %(prog)s puzzle --preset classic1 -o cube.stl
  %(prog)s body --stickerless --json -o body.json
"""
    )
    parser.add_argument(
        'part',
        nargs='?',
        choices=PARTS,
        default='cubie',
        help='Part to generate (default: cubie)'
    )
    parser.add_argument(
        '-o', '--output',
        help='Output file (default: <part>.stl, or <part>.json with --json)'
    )
    parser.add_argument(
        '--preset',
        choices=sorted(PRESETS),
        default='default',
        help='Starting parameter preset (default: default)'
    )
    parser.add_argument(
        '--position',
        type=int,
        nargs=3,
        default=[1, 1, 1],
        metavar=('X', 'Y', 'Z'),
        help='Cubie grid position, each -1, 0 or 1 (default: 1 1 1)'
    )

    # Shape options; omitted values come from the preset
    parser.add_argument('--roundedness', type=float, help='Body corner roundedness, 0 (sharp) to 1 (sphere)')
    parser.add_argument('--bevel-width', type=float, help='Cosmetic bevel width, 0 to disable')
    parser.add_argument('--face-cover', type=float, help='Sticker size as a fraction of the face')
    parser.add_argument('--face-radius', type=float, help='Sticker corner roundedness')
    parser.add_argument('--face-edge-radius', type=float, help='Rounded edge on extruded stickers')
    parser.add_argument('--ring-width', type=float, help='Sticker ring width (1 = solid sticker)')
    parser.add_argument('--extrude', type=float, help='Sticker extrusion depth')
    parser.add_argument('--spread', type=float, help='Gap factor between cubies in the puzzle')
    parser.add_argument(
        '--stickerless',
        action='store_true',
        help='Color the body itself instead of adding stickers'
    )
    sticker_group = parser.add_mutually_exclusive_group()
    sticker_group.add_argument('--stickers', action='store_true', help='Add stickers to exposed faces')
    sticker_group.add_argument('--no-stickers', action='store_true', help='Do not add stickers')
    parser.add_argument(
        '--colors',
        choices=sorted(COLOR_SCHEMES),
        default='classic',
        help='Face color scheme (default: classic)'
    )
    parser.add_argument(
        '--body-color',
        choices=sorted(SOLID_COLORS),
        default='bl',
        help='Body color for stickered cubies (default: bl)'
    )

    # Output format
    parser.add_argument(
        '--ascii',
        action='store_true',
        help='Save output as ASCII STL instead of binary'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Write the mesh as JSON (positions, triangles, normals, tags) instead of STL'
    )

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        if any(p not in (-1, 0, 1) for p in args.position):
            raise ValueError("--position values must be -1, 0 or 1")
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    output = args.output or f"{args.part}.{'json' if args.json else 'stl'}"
    position = tuple(args.position)

    if args.part == 'puzzle':
        print(f"Generating puzzle (preset={args.preset}, spread={config.effective_spread})...")
    else:
        print(f"Generating {args.part} at position {position} (preset={args.preset})...")

    try:
        result = build_part(config, args.part, position)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Mesh: {result.vertex_count} vertices, {result.triangle_count} triangles")

    print(f"Saving to {output}...")
    if args.json:
        data = result.to_dict()
        data['config'] = config.to_dict()
        with open(output, 'w') as f:
            json.dump(data, f)
    else:
        result.save_stl(output, ascii=args.ascii)

    print("Done!")


if __name__ == '__main__':
    main()
