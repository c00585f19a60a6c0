#!/usr/bin/env python3
"""Test CLI options for feature parity with the web service."""

import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

import numpy as np
from stl import mesh

from cubiegen import main


class TestCommandLine(unittest.TestCase):
    """Run cubiegen.main() end to end into a temporary directory"""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def run_cli(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            main(list(argv))
        return out.getvalue()

    def test_body_stl(self):
        output = os.path.join(self.tmpdir, 'body.stl')
        printed = self.run_cli('body', '--roundedness', '0', '-o', output)
        self.assertIn('Done!', printed)

        loaded = mesh.Mesh.from_file(output)
        self.assertEqual(len(loaded.vectors), 12)
        np.testing.assert_allclose(loaded.max_, 0.5)

    def test_ascii_stl(self):
        output = os.path.join(self.tmpdir, 'sticker.stl')
        self.run_cli('sticker', '--preset', 'precious', '--ascii', '-o', output)
        with open(output, 'rb') as f:
            self.assertTrue(f.read().startswith(b'solid'))

    def test_json_output(self):
        output = os.path.join(self.tmpdir, 'cubie.json')
        self.run_cli('cubie', '--stickers', '--position', '0', '0', '1', '--json', '-o', output)
        with open(output) as f:
            data = json.load(f)
        self.assertTrue(data['config']['add_stickers'])
        self.assertEqual(len(data['positions']), data['vertex_count'])
        self.assertEqual(set(data['part_labels']), {0, 1})

    def test_stickerless_option(self):
        output = os.path.join(self.tmpdir, 'body.json')
        self.run_cli('body', '--stickerless', '--json', '-o', output)
        with open(output) as f:
            data = json.load(f)
        self.assertEqual(data['config']['block_type'], 'stickerless')
        self.assertEqual(set(data['triangle_buckets']), {0, 1, 2})

    def test_puzzle(self):
        output = os.path.join(self.tmpdir, 'puzzle.stl')
        printed = self.run_cli('puzzle', '--roundedness', '0', '--spread', '1.1', '-o', output)
        self.assertIn('spread=1.1', printed)
        loaded = mesh.Mesh.from_file(output)
        self.assertEqual(len(loaded.vectors), 27 * 12)
        np.testing.assert_allclose(loaded.max_, 1.6, rtol=1e-6)

    def test_default_output_name(self):
        cwd = os.getcwd()
        os.chdir(self.tmpdir)
        try:
            self.run_cli('body', '--roundedness', '0')
            self.assertTrue(os.path.exists('body.stl'))
        finally:
            os.chdir(cwd)

    def test_invalid_values_exit(self):
        """Out-of-range values print an error and exit with status 1"""
        bad_arguments = [
            ['body', '--roundedness', '1.5'],
            ['body', '--extrude', '0.9'],
            ['body', '--spread', '3'],
            ['body', '--position', '2', '0', '0'],
        ]
        for argv in bad_arguments:
            with self.assertRaises(SystemExit) as context:
                self.run_cli(*argv, '-o', os.path.join(self.tmpdir, 'bad.stl'))
            self.assertEqual(context.exception.code, 1)
            self.assertFalse(os.path.exists(os.path.join(self.tmpdir, 'bad.stl')))

    def test_conflicting_sticker_flags(self):
        """argparse rejects --stickers with --no-stickers"""
        with self.assertRaises(SystemExit) as context:
            with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()):
                main(['cubie', '--stickers', '--no-stickers'])
        self.assertEqual(context.exception.code, 2)


def run_tests():
    """Run all tests and print results"""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    import sys
    sys.exit(run_tests())
