"""
The standard tasks of a Go project.

Projects add their own tasks (and parameters) in a ``GoMake.py`` module in the working directory, or
in any module given by ``--module``. These are listed in the help after the standard ones.
"""

from gomake import Context
from gomake import Parameter
from gomake import section
from gomake import task
from gomake import Task
from gomake import TaskException
from gomake import variable_getters
from gomake.guards import choice_or_error
from gomake.guards import empty_or_error
from gomake.help import read_marker_lines
from gomake.help import render_help
from gomake.patterns import str2list
from typing import Callable

# pylint: disable=unused-variable


def _gobin(context: Context) -> str:
    return context.join_path(context.project_root, context.text('BINARY_DIR'))


def _go_env(name: str) -> Callable[[Context], str]:
    def _compute(context: Context) -> str:
        return context.capture('go env ' + name)
    return _compute


def define_parameters() -> None:
    """
    Define the configuration variables of a Go project.
    """
    Parameter(name='BINARY_DIR', metavar='DIR', default='bin', parser=str, order=1,
              description='get the directory with binaries')

    Parameter(name='GOBIN', metavar='DIR', default=None, parser=str, order=2,
              compute=_gobin, export=True, on_path=True,
              description="""
                  get the absolute path where the `go install` command installs binaries;
                  GOBIN will be exported to child processes and prepended to PATH
              """)

    Parameter(name='GOOS', metavar='STR', default=None, parser=str, order=3,
              compute=_go_env('GOOS'), export=True,
              description="""
                  get the target's operation system;
                  GOOS will be exported to child processes
              """)

    Parameter(name='GOARCH', metavar='STR', default=None, parser=str, order=4,
              compute=_go_env('GOARCH'), export=True,
              description="""
                  get the target's architecture;
                  GOARCH will be exported to child processes
              """)

    Parameter(name='AUDIT_RULES', metavar='TASKS', parser=str2list(str), order=5,
              default=['mod/tidy-diff', 'mod/verify', 'fmt/no-dirty', 'golangci-lint'],
              description="""
                  get a list of targets each of which is invoked for the audit
                  target
              """)

    Parameter(name='HELP_FILES', metavar='FILES', parser=str2list(str), order=6, default=[],
              description="""
                  definition files whose '##' comment lines are appended to the help
              """)


def define_tasks() -> None:  # pylint: disable=too-many-locals,too-many-statements
    """
    Register the standard tasks, in the order they are listed in the help.
    """
    define_parameters()

    section()

    @task('help', 'print this help message and exit')
    def help_message(context: Context) -> None:
        payloads = Task.help_payloads()
        payloads += read_marker_lines(context.values['HELP_FILES'])
        platform = context.platform
        context.stdout.write(render_help(platform.name, platform.shell,
                                         platform.help_renderer(), payloads))
        context.stdout.flush()

    section('Variables')

    variable_getters('BINARY_DIR', 'GOBIN', 'GOOS', 'GOARCH', 'AUDIT_RULES')

    @task('gm/confirm')
    def confirm(context: Context) -> None:
        choice_or_error(context, 'Are you sure?', 'y', 'N', 'The choice is not confirmed. Abort!')

    @task('gm/git/no-dirty')
    def git_no_dirty(context: Context) -> None:
        empty_or_error(context, 'There are untracked/unstaged/uncommitted changes!',
                       'git status --porcelain')

    @task('gm/git/no-staged')
    def git_no_staged(context: Context) -> None:
        empty_or_error(context, 'There are staged changes!',
                       context.platform.staged_changes_command())

    @task('gm/create/binary_dir')
    def create_binary_dir(context: Context) -> None:
        binary_dir = context.text('BINARY_DIR')
        status = context.spawn(context.platform.create_directory_command(binary_dir))
        if status != 0:
            raise TaskException('Can not create the directory: %s' % binary_dir, status)

    section('Build')

    @task('mod/download', 'download modules to local cache')
    def mod_download(context: Context) -> None:
        context.run('Downloading modules to local cache', 'go mod download -x')

    @task('mod/tidy-diff', """
        check missing and unused modules without modifying
        the `go.mod` and `go.sum` files
    """)
    def mod_tidy_diff(context: Context) -> None:
        context.run('Checking missing and unused modules', 'go mod tidy -diff')

    @task('mod/tidy', 'add missing modules and remove unused modules')
    def mod_tidy(context: Context) -> None:
        context.run('Adding missing modules and removing unused modules', 'go mod tidy -v')

    @task('clean', 'remove files from the binary directory')
    def clean(context: Context) -> None:
        binary_dir = context.text('BINARY_DIR')
        context.run('Cleaning %s' % binary_dir, context.platform.clean_command(binary_dir))

    section('Quality control')

    @task('audit', 'run quality control checks (see the AUDIT_RULES variable)',
          requires=lambda context: context.values['AUDIT_RULES'])
    def audit(context: Context) -> None:
        pass

    @task('mod/verify', 'verify that dependencies have expected content')
    def mod_verify(context: Context) -> None:
        context.run('Verifying dependencies', 'go mod verify')

    @task('fmt/no-dirty', 'check package sources whose formatting differs from gofmt')
    def fmt_no_dirty(context: Context) -> None:
        empty_or_error(context, 'Package sources is unformatted', 'gofmt -d .')

    @task('fmt', 'gofmt (reformat) package sources')
    def fmt(context: Context) -> None:
        context.run('Reformatting package sources', 'go fmt ./...')

    @task('vet', 'report likely mistakes in packages')
    def vet(context: Context) -> None:
        context.run('Running go vet', 'go vet ./...')

    @task('golangci-lint', 'a fast linters runner for Go')
    def golangci_lint(context: Context) -> None:
        context.run('Running golangci-lint', 'golangci-lint run ./...')

