from glob import glob
from setuptools import Command
from setuptools import find_packages
from setuptools import setup

import os
import re
import subprocess

SETUP_REQUIRES = ['setuptools_scm']
INSTALL_REQUIRES = ['pyyaml', 'termcolor>=2.1']
DEVELOP_REQUIRES = ['autopep8', 'isort', 'mypy', 'pylint', 'types-PyYAML']
TESTS_REQUIRE = ['pytest', 'pytest-cov', 'testfixtures']


def readme():
    sphinx = re.compile(':py:[a-z]+:(`[^`]+`)')
    with open('README.rst') as readme_file:
        return sphinx.sub('`\\1`', readme_file.read())


class SimpleCommand(Command):
    user_options = []

    def initialize_options(self):
        pass

    def finalize_options(self):
        pass

    def run(self):
        subprocess.check_call(self.command)


class AllCommand(SimpleCommand):
    description = 'run all needed steps before commit'

    def run(self):
        self.run_command('is_formatted')
        self.run_command('pylint')
        self.run_command('mypy')
        self.run_command('pytest')


class IsformattedCommand(SimpleCommand):
    description = 'use autopep8 and isort to check the formatting of all Python source files'
    command = ['autopep8', '--diff', '--exit-code', '--max-line-length', '100', '--recursive',
               'gomake', 'tests', 'setup.py']


class MypyCommand(SimpleCommand):
    description = 'run MyPy on all Python source files'
    command = ['mypy',
               '--warn-redundant-casts',
               '--disallow-untyped-defs',
               '--warn-unused-ignores',
               '--scripts-are-modules',
               *glob('gomake/**/*.py', recursive=True),
               *glob('tests/**/*.py', recursive=True)]


class PyTestCommand(SimpleCommand):
    description = 'run pytest and generate coverage reports'
    command = ['pytest',
               '--cov=gomake',
               '--cov-report=html',
               '--cov-report=term',
               '--no-cov-on-fail']

    def run(self):
        if os.path.exists('.coverage'):
            os.remove('.coverage')
        super().run()


class PylintCommand(SimpleCommand):
    description = 'run Pylint on all Python source files'
    command = [
        'pylint',
        '--init-import=yes',
        '--ignore-imports=yes',
        '--disable=' + ','.join([
            'fixme',
            'global-statement',
            'too-few-public-methods',
            'ungrouped-imports',
            'wrong-import-order',
        ])
    ] + [
        path for path
        in glob('gomake/**/*.py', recursive=True)
        if path != 'gomake/version.py'
    ] + glob('tests/**/*.py', recursive=True)


setup(name='gomake',
      use_scm_version=dict(write_to='gomake/version.py', fallback_version='0.1.0'),
      description='Multi-platform development tasks for Go projects',
      long_description=readme(),
      long_description_content_type='text/x-rst',
      classifiers=[
          'Development Status :: 3 - Alpha',
          'License :: OSI Approved :: MIT License',
          'Programming Language :: Python :: 3',
          'Topic :: Software Development :: Build Tools',
          'Intended Audience :: Developers',
      ],
      keywords='make go golang tasks',
      license='MIT',
      packages=find_packages(exclude=['tests']),
      package_data={'gomake': ['py.typed']},
      entry_points={'console_scripts': [
          'gomake=gomake.__main__:main',
      ]},
      setup_requires=SETUP_REQUIRES,
      install_requires=INSTALL_REQUIRES,
      extras_require={
          'test': TESTS_REQUIRE,
          'develop': INSTALL_REQUIRES + TESTS_REQUIRE + DEVELOP_REQUIRES
      },
      cmdclass={
          'all': AllCommand,
          'is_formatted': IsformattedCommand,
          'mypy': MypyCommand,
          'pytest': PyTestCommand,
          'pylint': PylintCommand,
      })
