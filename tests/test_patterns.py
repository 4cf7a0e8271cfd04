"""
Test the common utilities.
"""

from gomake.patterns import each_string
from gomake.patterns import flatten
from gomake.patterns import str2bool
from gomake.patterns import str2list
from unittest import TestCase

import argparse

# pylint: disable=missing-docstring


class TestPatterns(TestCase):

    def test_flatten(self) -> None:
        self.assertEqual(flatten('a', None, ['b', ['c', ['d']]]), ['a', 'b', 'c', 'd'])
        self.assertEqual(flatten(None), [])

    def test_each_string(self) -> None:
        self.assertEqual(list(each_string(['vet', 'fmt'], 'audit')), ['vet', 'fmt', 'audit'])

    def test_str2bool(self) -> None:
        self.assertTrue(str2bool('t'))
        self.assertTrue(str2bool('Yes'))
        self.assertFalse(str2bool('n'))
        self.assertRaisesRegex(argparse.ArgumentTypeError,
                               'Boolean value expected.',
                               str2bool, 'maybe')

    def test_str2list(self) -> None:
        self.assertEqual(str2list(str2bool)('y n'), [True, False])
        self.assertEqual(str2list(str)(' vet\tfmt '), ['vet', 'fmt'])
        self.assertEqual(str2list(str)(''), [])

        self.assertRaisesRegex(argparse.ArgumentTypeError,
                               'Boolean value expected.',
                               str2list(str2bool), 'y x n')
