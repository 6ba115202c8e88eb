#!/usr/bin/env python3
"""
Test runner for the clickndebrid unit tests.
Run this script to execute every test module in this directory.
"""

import sys
import os
import unittest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

def run_tests(pattern='test_*.py'):
    """Run all tests in the tests directory."""
    loader = unittest.TestLoader()
    start_dir = os.path.dirname(os.path.abspath(__file__))
    suite = loader.discover(start_dir, pattern=pattern)

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1

if __name__ == '__main__':
    # Optional argument narrows the run, e.g. `run_tests.py test_cache.py`
    sys.exit(run_tests(sys.argv[1] if len(sys.argv) > 1 else 'test_*.py'))
