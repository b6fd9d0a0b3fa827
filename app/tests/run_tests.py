#!/usr/bin/env python3
"""
Test runner for Android Strings Exporter
"""
import os
import sys
import unittest

# Add the parent directory to the Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def run_all_tests():
    """Run all test cases and return the result."""
    test_dir = os.path.dirname(os.path.abspath(__file__))
    test_suite = unittest.defaultTestLoader.discover(test_dir, pattern="test_*.py")
    return unittest.TextTestRunner(verbosity=2).run(test_suite)


if __name__ == "__main__":
    result = run_all_tests()
    sys.exit(0 if result.wasSuccessful() else 1)
