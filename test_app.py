#!/usr/bin/env python3
"""
Tests for the Flask geometry service
Uses the Flask test client; no server needs to be running
"""

import unittest
import warnings
from unittest import mock

import numpy as np

from app import create_app
from config import ProductionConfig
from puzzle import PRESETS, PARTS


class TestServiceEndpoints(unittest.TestCase):
    """Test the JSON endpoints"""

    @classmethod
    def setUpClass(cls):
        cls.app = create_app('testing')
        cls.max_triangles = cls.app.config['MAX_OUTPUT_TRIANGLES']

    def setUp(self):
        self.client = self.app.test_client()

    def tearDown(self):
        self.app.config['MAX_OUTPUT_TRIANGLES'] = self.max_triangles

    def test_health_endpoint(self):
        response = self.client.get('/health')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['status'], 'healthy')
        self.assertEqual(data['service'], 'cube-geometry')

    def test_info_endpoint(self):
        response = self.client.get('/api/info')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['parts'], PARTS)
        self.assertEqual(set(data['presets']), set(PRESETS))
        self.assertIn('classic', data['color_schemes'])
        self.assertEqual(data['defaults']['block_r'], 0.15)
        self.assertIn('max_output_triangles', data['limits'])

    def test_mesh_cubie(self):
        response = self.client.post('/api/mesh', json={
            'part': 'cubie',
            'position': [1, -1, 0],
            'preset': 'classic1',
        })
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['position'], [1, -1, 0])
        self.assertTrue(data['config']['add_stickers'])

        result = data['mesh']
        self.assertEqual(len(result['positions']), result['vertex_count'])
        self.assertEqual(len(result['triangles']), result['triangle_count'])
        self.assertEqual(len(result['colors']), result['vertex_count'])
        self.assertEqual(set(result['part_labels']), {0, 1})

    def test_mesh_overrides(self):
        """Request values override the preset"""
        response = self.client.post('/api/mesh', json={
            'part': 'body',
            'roundedness': 0.0,
            'normals': False,
        })
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['config']['block_r'], 0.0)
        self.assertEqual(data['mesh']['triangle_count'], 12)
        self.assertNotIn('normals', data['mesh'])

    def test_mesh_defaults(self):
        """An empty request builds the default corner cubie"""
        response = self.client.post('/api/mesh')
        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['part'], 'cubie')
        self.assertEqual(data['position'], [1, 1, 1])

    def test_mesh_sticker(self):
        response = self.client.post('/api/mesh', json={'part': 'sticker', 'position': [0, 0, -1]})
        self.assertEqual(response.status_code, 200)
        positions = np.array(response.get_json()['mesh']['positions'])
        self.assertAlmostEqual(positions[:, 2].max(), -0.5)

    def test_mesh_rejects_puzzle(self):
        response = self.client.post('/api/mesh', json={'part': 'puzzle'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.get_json())

    def test_invalid_parameters(self):
        """Out-of-range and unknown values are rejected with 400"""
        bad_requests = [
            {'roundedness': 1.5},
            {'spread': 0.5},
            {'extrude': 0.8},
            {'bevel_width': 'wide'},
            {'preset': 'nonexistent'},
            {'block_type': 'glossy'},
            {'color_scheme': 'neon'},
            {'body_color': 'xx'},
            {'position': [2, 0, 0]},
            {'position': [1, 1]},
            {'position': [0.7, 0, 1]},
        ]
        for params in bad_requests:
            response = self.client.post('/api/mesh', json=params)
            self.assertEqual(response.status_code, 400, f"{params} should be rejected")
            self.assertIn('error', response.get_json())

    def test_not_found(self):
        response = self.client.get('/api/nothing-here')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['error'], 'Not found')


class TestExportEndpoint(unittest.TestCase):
    """Test STL downloads"""

    @classmethod
    def setUpClass(cls):
        cls.app = create_app('testing')
        cls.max_triangles = cls.app.config['MAX_OUTPUT_TRIANGLES']

    def setUp(self):
        self.client = self.app.test_client()

    def tearDown(self):
        self.app.config['MAX_OUTPUT_TRIANGLES'] = self.max_triangles

    def test_export_puzzle(self):
        """Sharp cubies give 27 * 12 triangles in a binary STL"""
        response = self.client.post('/api/export', json={'roundedness': 0.0})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.mimetype, 'application/octet-stream')
        self.assertIn('puzzle.stl', response.headers['Content-Disposition'])

        triangles = int(response.headers['X-Triangle-Count'])
        self.assertEqual(triangles, 27 * 12)
        self.assertEqual(int(response.headers['X-Vertex-Count']), 27 * 8)
        self.assertEqual(len(response.data), 84 + 50 * triangles)

    def test_export_ascii(self):
        response = self.client.post('/api/export', json={'part': 'body', 'ascii': True})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b'solid'))

    def test_export_triangle_limit(self):
        self.app.config['MAX_OUTPUT_TRIANGLES'] = 10
        response = self.client.post('/api/export', json={'part': 'body', 'roundedness': 0.0})
        self.assertEqual(response.status_code, 400)
        self.assertIn('limit', response.get_json()['error'])

    def test_export_unknown_part(self):
        response = self.client.post('/api/export', json={'part': 'wheel'})
        self.assertEqual(response.status_code, 400)


class TestAppConfig(unittest.TestCase):
    """Test configuration selection in the app factory"""

    def tearDown(self):
        create_app('testing')

    def test_testing_config(self):
        app = create_app('testing')
        self.assertTrue(app.config['TESTING'])
        self.assertFalse(app.config['RATELIMIT_ENABLED'])

    def test_production_warns_without_secret_key(self):
        with mock.patch.object(ProductionConfig, 'SECRET_KEY', 'dev-secret-key-change-in-production'):
            with self.assertWarns(RuntimeWarning):
                create_app('production')

    def test_production_quiet_with_secret_key(self):
        with mock.patch.object(ProductionConfig, 'SECRET_KEY', 'a-real-secret'):
            with warnings.catch_warnings():
                warnings.simplefilter('error')
                app = create_app('production')
        self.assertEqual(app.config['SECRET_KEY'], 'a-real-secret')


def run_tests():
    """Run all tests and print results"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestServiceEndpoints))
    suite.addTests(loader.loadTestsFromTestCase(TestExportEndpoint))
    suite.addTests(loader.loadTestsFromTestCase(TestAppConfig))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    import sys
    sys.exit(run_tests())
