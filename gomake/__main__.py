"""
Main Program
"""

from gomake import make
from textwrap import dedent

import argparse


def main() -> None:
    """
    Universal main function for running GoMake tasks.
    """
    make(argparse.ArgumentParser(description=dedent("""
        Run some common development task(s) of a Go project, the same way on
        Unix-like systems and on Windows. Run the 'help' task to list them.

        Project-specific tasks and parameters are loaded from '-m module', or
        from 'GoMake.py' in the current directory. Parameters are also loaded
        from 'GoMake.yaml' in the current directory, and can be assigned on the
        command line using NAME=value.
    """), formatter_class=argparse.RawDescriptionHelpFormatter))


if __name__ == '__main__':
    main()
