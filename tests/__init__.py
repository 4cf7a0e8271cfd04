"""
Common utilities for tests.
"""

from gomake import Context
from gomake import Parameter
from gomake import reset_gomake
from gomake.platforms import Platform
from gomake.platforms import PosixPlatform
from gomake.tasks import define_tasks
from io import StringIO
from textwrap import dedent
from typing import Callable
from typing import List
from typing import Optional
from unittest import TestCase

import logging
import os
import shutil
import sys
import tempfile

# pylint: disable=missing-docstring


def undent(content: str) -> str:
    content = dedent(content)
    if content and content[0] == '\n':
        content = content[1:]
    return content


def write_file(path: str, content: str = '') -> None:
    with open(path, 'w') as file:
        file.write(undent(content))


def define_go_tasks() -> None:
    define_tasks()
    Parameter.by_name['GOOS'].value = 'linux'
    Parameter.by_name['GOARCH'].value = 'amd64'


def responses(*answers: str) -> Callable[[str], str]:
    remaining = list(answers)

    def _input(_prompt: str) -> str:
        return remaining.pop(0)

    return _input


class TestWithReset(TestCase):

    def setUp(self) -> None:
        reset_gomake(is_test=True)
        sys.argv = ['gomake']
        self.maxDiff = None  # pylint: disable=invalid-name
        logging.getLogger('asyncio').setLevel('WARN')

    def new_context(self, platform: Optional[Platform] = None, *,
                    project_root: str = '/project',
                    answers: Optional[List[str]] = None) -> Context:
        self.stdout = StringIO()  # pylint: disable=attribute-defined-outside-init
        return Context(platform or PosixPlatform('Linux'),
                       project_root=project_root,
                       environ={'PATH': os.environ.get('PATH', '/usr/bin:/bin')},
                       stdout=self.stdout,
                       input_function=responses(*(answers or [])),
                       use_color=False)


class TestWithFiles(TestWithReset):

    def setUp(self) -> None:
        super().setUp()
        self.previous_directory = os.getcwd()
        self.temporary_directory = tempfile.mkdtemp()
        os.chdir(os.path.expanduser(self.temporary_directory))
        sys.path.insert(0, os.getcwd())

    def tearDown(self) -> None:
        if sys.path and sys.path[0] == os.getcwd():
            sys.path.pop(0)
        os.chdir(self.previous_directory)
        shutil.rmtree(self.temporary_directory)

    def expect_file(self, path: str, expected: str) -> None:
        with open(path, 'r') as file:
            actual = file.read()
            self.assertEqual(actual, undent(expected))
