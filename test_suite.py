#!/usr/bin/env python3
"""
Full test suite for the cube geometry generator
Runs geometry, assembly, CLI and service tests together
"""
import unittest

import test_sticker
import test_cubie
import test_facesplit
import test_bevel
import test_puzzle
import test_cli_options
import test_app

MODULES = [
    test_sticker,
    test_cubie,
    test_facesplit,
    test_bevel,
    test_puzzle,
    test_cli_options,
    test_app,
]


def run_tests():
    """Run all tests and print results"""
    # Create test suite
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    for module in MODULES:
        suite.addTests(loader.loadTestsFromModule(module))

    # Run tests
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    # Return exit code
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    import sys
    sys.exit(run_tests())
