"""
GoMake module.
"""

from .version import version as __version__  # pylint: disable=unused-import
from argparse import ArgumentParser
from argparse import Namespace
from gomake.patterns import each_string
from gomake.patterns import flatten
from gomake.patterns import LoggingFormatter
from gomake.patterns import str2bool
from gomake.patterns import Strings
from gomake.platforms import detect_platform
from gomake.platforms import Platform
from gomake.platforms import resolve_platform
from importlib import import_module
from subprocess import PIPE
from textwrap import dedent
from typing import Any
from typing import Callable
from typing import Dict
from typing import IO
from typing import List
from typing import Mapping
from typing import Optional
from typing import Set
from typing import Tuple
from typing import Union

import asyncio
import logging
import os
import sys
import yaml

#: The log level for tracing calls.
TRACE = (logging.DEBUG + logging.INFO) // 2

logging.addLevelName(TRACE, 'TRACE')

#: A configured logger for the tasks.
logger = logging.getLogger('gomake')

#: The default module to load for project-specific tasks and parameters.
DEFAULT_MODULE = 'GoMake'

#: The default parameter configuration YAML file to load.
DEFAULT_CONFIG = 'GoMake.yaml'

#: The exit status when the shell itself can not be run.
SHELL_NOT_FOUND = 127

_is_test: bool = False


class TaskException(Exception):
    """
    Indicates an external command has failed.
    """

    def __init__(self, message: str, status: int = 1) -> None:
        super().__init__(message)

        #: The exit status of the failed command.
        self.status = status


class GuardException(Exception):
    """
    Indicates a guard has rejected the invocation.
    """

    #: The exit status of a rejected invocation.
    status = 1


class Parameter:  # pylint: disable=too-many-instance-attributes
    """
    Describe a configuration variable.
    """

    #: The current known parameters.
    by_name: Dict[str, 'Parameter']

    @staticmethod
    def reset() -> None:
        """
        Reset all the current state, for tests.
        """
        Parameter.by_name = {}

    def __init__(self, *, name: str, default: Any, parser: Callable[[str], Any], description: str,
                 short: Optional[str] = None, order: Optional[int] = None,
                 metavar: Optional[str] = None,
                 compute: Optional[Callable[['Context'], Any]] = None,
                 export: bool = False, on_path: bool = False) -> None:
        """
        Create and register a parameter description.
        """

        #: The unique name of the parameter.
        self.name = name

        #: The unique short name of the parameter.
        self.short = short

        #: The value to use if the parameter is not explicitly configured.
        self.default = default

        #: How to parse the parameter value from a string (command line argument).
        self.parser = parser

        #: A description of the parameter for help messages.
        self.description = description

        #: Optional name of the command line parameter value (``metavar`` in ``argparse``).
        self.metavar = metavar

        #: Optional order of parameter (in help message)
        self.order = order

        #: How to compute the value when it is ``None`` once the invocation context is known.
        self.compute = compute

        #: Whether to export the value to the environment of the spawned commands.
        self.export = export

        #: Whether to prepend the value to the ``PATH`` of the spawned commands.
        self.on_path = on_path

        #: The effective value of the parameter.
        self.value = default

        if name in Parameter.by_name:
            raise RuntimeError('Multiple definitions for the parameter: %s' % name)
        Parameter.by_name[name] = self

    @staticmethod
    def add_to_parser(parser: ArgumentParser) -> None:
        """
        Add a command line flag for each parameter to the parser to allow
        overriding parameter values directly from the command line.
        """
        parser.add_argument('--config', '-c', metavar='FILE', action='append',
                            help='Load a parameters configuration YAML file')
        parameters = [(parameter.order or 0, parameter.name, parameter)
                      for parameter in Parameter.by_name.values()]
        for _, _, parameter in sorted(parameters, key=lambda entry: entry[:2]):
            text = ' '.join(parameter.description.split()).replace('%', '%%') \
                + ' (default: %s)' % parameter.default
            if parameter.short:
                parser.add_argument('--' + parameter.name, '-' + parameter.short,
                                    help=text, metavar=parameter.metavar)
            else:
                parser.add_argument('--' + parameter.name, help=text, metavar=parameter.metavar)

    @staticmethod
    def parse_args(args: Namespace, assignments: Optional[List[str]] = None) -> None:
        """
        Update the values based on loaded configuration files, explicit command line flags, and
        ``NAME=value`` assignments, in this order.
        """
        if os.path.exists(DEFAULT_CONFIG):
            Parameter.load_config(DEFAULT_CONFIG)
        for path in (getattr(args, 'config', None) or []):
            Parameter.load_config(path)

        for name, parameter in Parameter.by_name.items():
            value = vars(args).get(name)
            if value is not None:
                parameter.set(value)

        for assignment in (assignments or []):
            name, value = assignment.split('=', 1)
            parameter = Parameter.by_name.get(name)
            if parameter is None:
                raise RuntimeError('Unknown parameter: %s '
                                   'assigned on the command line' % name)
            parameter.set(value)

    def set(self, value: str) -> None:
        """
        Set the value of the parameter from a string.
        """
        try:
            self.value = self.parser(value)
        except BaseException:
            raise RuntimeError(  # pylint: disable=raise-missing-from
                'Invalid value: %s for the parameter: %s' % (value, self.name))

    @staticmethod
    def load_config(path: str) -> None:
        """
        Load a configuration file.
        """
        try:
            with open(path, 'r') as file:
                data = yaml.safe_load(file.read())
        except (OSError, yaml.YAMLError) as error:
            raise RuntimeError(  # pylint: disable=raise-missing-from
                'Can not load the configuration file: %s error: %s' % (path, error))

        if data is None:
            data = {}

        if not isinstance(data, dict):
            raise RuntimeError('The configuration file: %s '
                               'does not contain a top-level mapping' % path)

        for name, value in data.items():
            parameter = Parameter.by_name.get(name)
            if parameter is None:
                raise RuntimeError('Unknown parameter: %s '
                                   'specified in the configuration file: %s'
                                   % (name, path))

            if isinstance(value, str):
                try:
                    value = parameter.parser(value)
                except BaseException:
                    raise RuntimeError(  # pylint: disable=raise-missing-from
                        'Invalid value: %s '
                        'for the parameter: %s '
                        'specified in the configuration file: %s'
                        % (value, name, path))

            parameter.value = value


#: The level of messages to log.
log_level: Parameter

#: Whether to color the console markers (by default, ``True``).
color: Parameter

#: An explicit name of the host platform, bypassing the detection.
os_name: Parameter


def _define_parameters() -> None:
    # pylint: disable=invalid-name

    global log_level
    log_level = Parameter(  #
        name='log_level',
        short='ll',
        metavar='STR',
        default='WARN',
        parser=str,
        description='The log level to use')

    global color
    color = Parameter(  #
        name='color',
        metavar='BOOL',
        default=True,
        parser=str2bool,
        description='Whether to color the console markers')

    global os_name
    os_name = Parameter(  #
        name='OS',
        metavar='STR',
        default=None,
        parser=str,
        description="""
            The name of the host operating system (Windows, Linux, Darwin,
            Cygwin, MSYS, ...), overriding the automatic detection
        """)
    # pylint: enable=invalid-name


class Context:  # pylint: disable=too-many-instance-attributes
    """
    The configuration of a single invocation, passed to every task.
    """

    def __init__(self, platform: Platform, *,  # pylint: disable=too-many-arguments
                 project_root: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 stdout: Optional[IO[str]] = None,
                 input_function: Optional[Callable[[str], str]] = None,
                 use_color: Optional[bool] = None) -> None:
        """
        Resolve the configuration for the platform.

        The values of the parameters are taken from :py:attr:`gomake.Parameter.by_name`; any
        ``None`` value is computed now. The exported values are placed in the environment of the
        spawned commands, but not in the environment of this process.
        """
        #: The capabilities of the host platform.
        self.platform = platform

        #: The absolute path of the project root directory.
        self.project_root = (project_root or os.getcwd()).replace('/', platform.path_sep)

        #: The stream to print messages to.
        self.stdout = stdout or sys.stdout

        #: How to read a response from the user.
        self.input_function = input_function or input

        #: Whether to color the console markers.
        self.use_color = color.value if use_color is None else use_color

        #: The environment of the spawned commands.
        self.environment: Dict[str, str] = dict(os.environ if environ is None else environ)

        #: The resolved value of each parameter.
        self.values: Dict[str, Any] = {}

        for name, parameter in Parameter.by_name.items():
            value = parameter.value
            if value is None and parameter.compute is not None:
                value = parameter.compute(self)
            self.values[name] = value

        for name, parameter in Parameter.by_name.items():
            value = self.values[name]
            if value is None:
                continue
            if parameter.export:
                self.environment[name] = self.text(name)
            if parameter.on_path:
                path_name = self._path_name()
                path = self.environment.get(path_name)
                if path:
                    self.environment[path_name] = self.text(name) + platform.list_sep + path
                else:
                    self.environment[path_name] = self.text(name)

    def _path_name(self) -> str:
        for name in self.environment:
            if name.upper() == 'PATH':
                return name
        return 'PATH'

    def text(self, name: str) -> str:
        """
        Return the value of a parameter as text.
        """
        value = self.values[name]
        if value is None:
            return ''
        if isinstance(value, (list, tuple)):
            return ' '.join(str(entry) for entry in value)
        return str(value)

    def join_path(self, *parts: str) -> str:
        """
        Join path components using the platform path separator.
        """
        return self.platform.path_sep.join([part.rstrip('/\\') for part in parts[:-1]]
                                          + [parts[-1]])

    def echo(self, message: str = '') -> None:
        """
        Print a plain message.
        """
        self.stdout.write(message + '\n')
        self.stdout.flush()

    def _marker(self, kind: str, marker: str, message: str) -> None:
        self.stdout.write(self.platform.color_text(kind, marker, self.use_color) + message + '\n')
        self.stdout.flush()

    def go(self, message: str) -> None:
        """
        Print a start marker.
        """
        self._marker('go', '> ', message)

    def ok(self, message: str) -> None:
        """
        Print a success marker.
        """
        self._marker('ok', 'v ', message)

    def warn(self, message: str) -> None:
        """
        Print a warning marker.
        """
        self._marker('warn', '!! ', message)

    def err(self, message: str) -> None:
        """
        Print a failure marker.
        """
        self._marker('err', 'x ', message)

    async def _spawn(self, command: str, capture: bool) -> Tuple[int, str]:
        process = await asyncio.create_subprocess_exec(*self.platform.shell_command(command),
                                                       env=self.environment,
                                                       stdout=PIPE if capture else None)
        output, _ = await process.communicate()
        text = '' if output is None else output.decode(errors='replace')
        assert process.returncode is not None
        return process.returncode, text

    def _execute(self, command: str, capture: bool) -> Tuple[int, str]:
        try:
            return asyncio.run(self._spawn(command, capture))
        except OSError as error:
            logger.debug('Can not run the shell: %s error: %s', self.platform.shell, error)
            raise TaskException(  # pylint: disable=raise-missing-from
                'Can not run the shell: %s' % self.platform.shell, SHELL_NOT_FOUND)

    def spawn(self, command: str) -> int:
        """
        Execute a shell command and return its exit status.

        Raises :py:class:`gomake.TaskException` if the shell itself can not be run.
        """
        logger.info('Run: %s', command)
        status, _ = self._execute(command, capture=False)
        if status == 0:
            logger.log(TRACE, 'Success: %s', command)
        else:
            logger.debug('Failure: %s', command)
        return status

    def capture(self, command: str) -> str:
        """
        Execute a shell command and return its output, without its trailing newlines.

        The exit status of the command is ignored.
        """
        logger.debug('Capture: %s', command)
        status, output = self._execute(command, capture=True)
        logger.debug('Captured status: %s output: %r', status, output)
        return output.rstrip('\r\n')

    def run(self, description: str, command: str) -> None:
        """
        Execute a shell command, surrounded by start and success or failure markers.

        Raises :py:class:`gomake.TaskException` if the command fails.
        """
        self.go(description + '...')
        try:
            status = self.spawn(command)
        except TaskException:
            self.err(description + ' - failed')
            raise
        if status != 0:
            self.err(description + ' - failed')
            raise TaskException('%s - failed' % description, status)
        self.ok(description + ' - done')


#: How to compute the required tasks of a task.
Requires = Union[Strings, Callable[[Context], Strings]]


class Task:
    """
    A named task.
    """

    #: The current known tasks.
    by_name: Dict[str, 'Task']

    #: The tasks and section titles, in the order they are listed by the help.
    listing: List[Union['Task', 'Section']]

    @staticmethod
    def reset() -> None:
        """
        Reset all the current state, for tests.
        """
        Task.by_name = {}
        Task.listing = []

    def __init__(self, function: Callable[[Context], None], name: str,
                 description: Optional[str] = None, requires: Requires = None) -> None:
        """
        Register a task function.
        """
        #: The function that implements the task.
        self.function = function

        #: The name of the task.
        self.name = name

        #: The description of the task for the help, if any.
        self.description = None if description is None else dedent(description).strip()

        #: The tasks to run (in order) before this one.
        self.requires = requires

        if not name or ':' in name or len(name.split()) != 1:
            raise RuntimeError('Invalid name: %r for the task: %s.%s'
                               % (name, function.__module__, function.__qualname__))

        if name in Task.by_name:
            conflicting = Task.by_name[name].function
            raise RuntimeError('Conflicting definitions for the task: %s '
                               'in both: %s.%s '
                               'and: %s.%s'
                               % (name,
                                  conflicting.__module__, conflicting.__qualname__,
                                  function.__module__, function.__qualname__))
        Task.by_name[name] = self
        Task.listing.append(self)

    def required(self, context: Context) -> List[str]:
        """
        Return the names of the tasks required by this task.
        """
        if callable(self.requires):
            return flatten(self.requires(context))
        return flatten(self.requires)

    def help_lines(self) -> List[str]:
        """
        Return the help payloads of the task (none if it has no description).
        """
        if not self.description:
            return []
        lines = self.description.split('\n')
        return ['%s: %s' % (self.name, lines[0])] + [': %s' % line.strip() for line in lines[1:]]

    @staticmethod
    def help_payloads() -> List[str]:
        """
        Return the help payloads of all the tasks and sections, in order.
        """
        payloads: List[str] = []
        for entry in Task.listing:
            payloads += entry.help_lines()
        return payloads


class Section:  # pylint: disable=too-few-public-methods
    """
    A header of a block of tasks in the help.
    """

    def __init__(self, title: Optional[str] = None) -> None:
        """
        Register a section header. Without a title, this is just an empty line.
        """
        #: The title of the section, if any.
        self.title = title
        Task.listing.append(self)

    def help_lines(self) -> List[str]:
        """
        Return the help payloads of the section.
        """
        if self.title is None:
            return [':']
        return [':', ': ' + self.title, ':']


def task(name: str, description: Optional[str] = None,
         requires: Requires = None) -> Callable[[Callable], Callable]:
    """
    Decorate a task function.

    The function is invoked with the :py:class:`gomake.Context` of the invocation. Tasks without a
    ``description`` are not listed in the help. The ``requires`` tasks (or a function computing them
    from the context) are run, in order, before the task itself.
    """
    def _wrap(wrapped: Callable) -> Callable:
        Task(wrapped, name, description, requires)
        return wrapped
    return _wrap


def section(title: Optional[str] = None) -> None:
    """
    Start a new block of tasks in the help.
    """
    Section(title)


def variable_getters(*names: str) -> None:
    """
    Register a task printing the value of each of the named parameters.

    The task has the same name as the parameter, and the description of the parameter is listed in
    the help.
    """
    for name in names:
        parameter = Parameter.by_name.get(name)
        if parameter is None:
            raise RuntimeError('Unknown parameter: %s' % name)

        def _getter(context: Context, name: str = name) -> None:
            context.echo(context.text(name))

        Task(_getter, name, parameter.description)


class Invocation:
    """
    Run tasks, one at a time, for a single invocation.
    """

    def __init__(self, context: Context) -> None:
        """
        Create an invocation that did not run anything yet.
        """
        #: The configuration of the invocation.
        self.context = context

        #: The names of the tasks that completed, in order.
        self.done: List[str] = []

        self._active: List[str] = []

    def verify(self, names: Strings) -> None:
        """
        Verify all the tasks (and all their required tasks) are known, before running anything.
        """
        seen: Set[str] = set()
        pending = flatten(names)
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            known = Task.by_name.get(name)
            if known is None:
                raise RuntimeError('Unknown task: %s' % name)
            pending += known.required(self.context)

    def run(self, *names: Strings) -> None:
        """
        Run the tasks in order.

        Each task runs at most once. The first failure stops everything.
        """
        for name in each_string(*names):
            self._run(name)

    def _run(self, name: str) -> None:
        if name in self.done:
            logger.debug('Already done: %s', name)
            return

        if name in self._active:
            raise RuntimeError('Circular requirements: %s' % ' -> '.join(self._active + [name]))

        known = Task.by_name.get(name)
        if known is None:
            raise RuntimeError('Unknown task: %s' % name)

        self._active.append(name)
        try:
            for required in known.required(self.context):
                self._run(required)
            logger.log(TRACE, 'Call: %s', name)
            known.function(self.context)
        except (TaskException, GuardException):
            logger.log(TRACE, 'Fail: %s', name)
            raise
        finally:
            self._active.pop()

        logger.log(TRACE, 'Done: %s', name)
        self.done.append(name)


def make(parser: ArgumentParser, *,
         default_tasks: Strings = 'help',
         adapter: Optional[Callable[[Namespace], None]] = None) -> None:
    """
    A generic ``main`` function for ``GoMake``.

    The positional arguments are task names and ``NAME=value`` assignments of parameters.
    If no explicit tasks are given, will run the ``default_tasks`` (default: ``help``).

    The optional ``adapter`` may perform additional adaptation of the execution
    environment based on the parsed command-line arguments before the actual
    tasks are invoked.
    """
    default_tasks = flatten(default_tasks)

    _load_modules()

    parser.add_argument('TASK', nargs='*',
                        help='The task to run, or a NAME=value assignment (default: %s)'
                        % ' '.join(default_tasks))

    parser.add_argument('--module', '-m', metavar='MODULE', action='append',
                        help='A Python module to load (containing task definitions)')

    Parameter.add_to_parser(parser)

    args = parser.parse_args()
    names = [name for name in args.TASK if '=' not in name]
    assignments = [name for name in args.TASK if '=' in name]

    try:
        Parameter.parse_args(args, assignments)
        _setup_logging()

        if adapter is not None:
            adapter(args)

        context = Context(resolve_platform(detect_platform(os_name.value)))
        logger.debug('Platform: %s', context.platform.name)

        invocation = Invocation(context)
        names = names or default_tasks
        invocation.verify(names)
        invocation.run(names)

    except (TaskException, GuardException) as exception:
        logger.error('Fail: %s', exception)
        if _is_test:
            raise
        sys.exit(exception.status)

    except RuntimeError as exception:
        logger.error('%s', exception)
        if _is_test:
            raise
        sys.exit(2)


def _load_modules() -> None:
    import_module('gomake.tasks').define_tasks()

    # The modules define parameters, so they must be loaded before the parser exists, and
    # their names are picked out of the raw arguments.
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    did_import = False
    for option, value in zip(sys.argv, sys.argv[1:]):
        if option in ['-m', '--module']:
            did_import = True
            import_module(value)
    if not did_import and os.path.exists(DEFAULT_MODULE + '.py'):
        import_module(DEFAULT_MODULE)


def _setup_logging() -> None:
    logging.getLogger('asyncio').setLevel('WARN')

    if not _is_test and not logger.handlers:
        # pragma: no cover
        handler = logging.StreamHandler(sys.stderr)
        log_format = '%(asctime)s - gomake - %(levelname)s - %(message)s'
        handler.setFormatter(LoggingFormatter(log_format))
        logger.addHandler(handler)

    logger.setLevel(log_level.value)


def reset_gomake(is_test: bool = False) -> None:
    """
    Reset all the current state, for tests.
    """
    Parameter.reset()
    _define_parameters()

    Task.reset()

    if is_test:
        global _is_test  # pylint: disable=invalid-name
        _is_test = True
        logger.setLevel('DEBUG')
        logging.getLogger('asyncio').setLevel('WARN')


reset_gomake()
