#!/usr/bin/env python3
"""
Unit tests for the cosmetic bevel
Tests rotation gating, no-op cases and which vertices move
"""
import math
import unittest
import numpy as np

from bevel import (
    DIAG,
    bevel_actions,
    rotation_matrix,
    add_bevel,
    add_face_bevel,
)
from cubie import rounded_cube_data
from sticker import extruded_ring_data


class TestBevelActions(unittest.TestCase):
    """Test which rotations apply to each cubie position"""

    def test_center_has_no_actions(self):
        self.assertEqual(bevel_actions((0, 0, 0)), [])

    def test_corner_uses_three_axis_pairs(self):
        """A corner cubie is beveled once about each axis"""
        actions = bevel_actions((1, 1, 1))
        self.assertEqual(len(actions), 3)
        self.assertEqual({(iy, iz) for iy, iz, _ in actions}, {(1, 2), (0, 1), (1, 0)})

    def test_face_center_uses_one_axis_pair(self):
        """A face center cubie gets all four rotations about its face axis"""
        actions = bevel_actions((0, 0, 1))
        self.assertEqual(len(actions), 4)
        self.assertEqual({(iy, iz) for iy, iz, _ in actions}, {(1, 2)})
        self.assertEqual(sorted(angle for _, _, angle in actions), [45, 135, 225, 315])

    def test_negative_direction_axis(self):
        """Rotations about x run the other way"""
        actions = bevel_actions((1, 0, 0))
        self.assertEqual(sorted(angle for _, _, angle in actions), [-315, -225, -135, -45])

    def test_rotation_matrices(self):
        np.testing.assert_array_almost_equal(rotation_matrix(2, 90) @ [1, 0, 0], [0, 1, 0])
        np.testing.assert_array_almost_equal(rotation_matrix(1, 90) @ [0, 0, 1], [1, 0, 0])
        np.testing.assert_array_almost_equal(rotation_matrix(0, 90) @ [0, 1, 0], [0, 0, 1])


class TestAddBevel(unittest.TestCase):
    """Test the body bevel"""

    @classmethod
    def setUpClass(cls):
        cls.body = rounded_cube_data(1.0, 0.15)

    def test_zero_width_is_noop(self):
        result = add_bevel(0.0, 0.15, (1, 1, 1), self.body.positions)
        np.testing.assert_array_equal(result, self.body.positions)

    def test_center_cubie_is_noop(self):
        result = add_bevel(0.3, 0.15, (0, 0, 0), self.body.positions)
        np.testing.assert_array_equal(result, self.body.positions)

    def test_input_not_modified(self):
        before = self.body.positions.copy()
        add_bevel(0.3, 0.15, (1, 1, 1), self.body.positions)
        np.testing.assert_array_equal(self.body.positions, before)

    def test_inner_top_corner_is_cut(self):
        """On a corner cubie the top-face corner toward the face center moves in"""
        positions = np.array([
            [-0.5, -0.5, 0.5],
            [0.5, 0.5, 0.5],
            [-0.5, -0.5, -0.5],
            [0.0, 0.0, 0.0],
        ])
        result = add_bevel(0.2, 0.15, (1, 1, 1), positions)

        # the cut corner ends up on the chamfer plane, short of its old diagonal
        self.assertLess(np.hypot(result[0, 0], result[0, 1]), DIAG)
        h = DIAG - math.sqrt(0.2 ** 2 / 2)
        self.assertLessEqual(np.hypot(result[0, 0], result[0, 1]), h + 1e-9)
        self.assertAlmostEqual(result[0, 2], 0.5)

        # outer corner, inner corner and center stay put
        np.testing.assert_allclose(result[1:], positions[1:], atol=1e-9)

    def test_bevel_stays_within_cubie(self):
        result = add_bevel(0.3, 0.15, (1, 1, 0), self.body.positions)
        self.assertTrue(np.all(np.abs(result) <= 0.5 + 1e-9))
        self.assertFalse(np.allclose(result, self.body.positions))

    def test_topology_unchanged(self):
        result = add_bevel(0.3, 0.15, (-1, 1, -1), self.body.positions)
        self.assertEqual(result.shape, self.body.positions.shape)


class TestAddFaceBevel(unittest.TestCase):
    """Test the sticker bevel"""

    def test_zero_width_is_noop(self):
        sticker = extruded_ring_data(0.9, 0.5, 0.1)
        result = add_face_bevel(0.0, (0, 0, 1), sticker.positions, sticker.face_widths)
        np.testing.assert_array_equal(result, sticker.positions)

    def test_face_center_cuts_sticker_corners(self):
        """Sticker corners are clipped to the bevel plane, the middle is not"""
        positions = np.array([[0.45, 0.45, 0.5], [0.0, 0.0, 0.5], [0.2, 0.0, 0.5]])
        widths = np.full(3, 0.5)
        result = add_face_bevel(0.2, (0, 0, 1), positions, widths)

        h = DIAG - math.sqrt(0.2 ** 2 / 2)
        self.assertAlmostEqual(np.hypot(result[0, 0], result[0, 1]), h)
        np.testing.assert_allclose(result[1:], positions[1:], atol=1e-12)

    def test_narrow_widths_are_cut_more(self):
        """The clamp height scales with face width"""
        positions = np.array([[0.3, 0.3, 0.5], [0.3, 0.3, 0.5]])
        result = add_face_bevel(0.2, (0, 0, 1), positions, np.array([0.5, 0.2]))
        self.assertLess(np.hypot(*result[1, :2]), np.hypot(*result[0, :2]))


def run_tests():
    """Run all tests and print results"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBevelActions))
    suite.addTests(loader.loadTestsFromTestCase(TestAddBevel))
    suite.addTests(loader.loadTestsFromTestCase(TestAddFaceBevel))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    import sys
    sys.exit(run_tests())
