"""
Detect the host platform and describe what it can do.

The host platform is detected once per invocation (see :py:func:`gomake.platforms.detect_platform`)
and then resolved into a :py:class:`gomake.platforms.Platform` object (see
:py:func:`gomake.platforms.resolve_platform`). Everything that differs between Windows and Unix-like
systems (the shell, separators, colors, the help renderer, and a few command templates) is asked of
this object, so nothing else needs to check the platform name again.
"""

from gomake.help import ColumnRenderer
from gomake.help import HelpRenderer
from gomake.help import TableRenderer
from subprocess import DEVNULL
from subprocess import PIPE
from termcolor import colored
from typing import Callable
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Tuple

import logging
import os
import shlex
import subprocess

#: The name of an unrecognized platform.
UNKNOWN = 'Unknown'

#: The name of native Windows.
WINDOWS = 'Windows'

#: The value of the ``OS`` environment variable on the Windows NT family.
WINDOWS_NT = 'Windows_NT'

#: The separator of the ``PATH`` entries on Windows.
SEMICOLON = ';'

#: The separator of the ``PATH`` entries on Unix-like systems.
COLON = ':'

#: Verbose ``uname`` outputs of Unix emulation layers on Windows and their short names.
SHORT_NAMES = [('CYGWIN', 'Cygwin'), ('MSYS', 'MSYS'), ('MINGW', 'MSYS')]

logger = logging.getLogger('gomake')


def shorten_name(name: str) -> str:
    """
    Collapse the verbose ``uname`` output of Cygwin and MSYS/MinGW (e.g.,
    ``MINGW64_NT-10.0-19045``) into ``Cygwin`` or ``MSYS``.
    """
    for prefix, short in SHORT_NAMES:
        if name.startswith(prefix):
            return short
    return name


def uname() -> str:
    """
    Return the output of ``uname``, or ``Unknown`` if it can't be run or fails.
    """
    try:
        completed = subprocess.run(['uname'], stdout=PIPE, stderr=DEVNULL,
                                   universal_newlines=True, check=False)
    except OSError as error:
        logger.debug('Can not run uname: %s', error)
        return UNKNOWN
    name = completed.stdout.strip()
    if completed.returncode != 0 or not name:
        return UNKNOWN
    return name


def detect_platform(override: Optional[str] = None,
                    environ: Optional[Mapping[str, str]] = None,
                    system_name: Callable[[], str] = uname) -> str:
    """
    Detect the name of the host platform.

    The first rule that applies wins:

    1. An explicit ``override`` (``OS=<name>`` on the command line) is trusted verbatim.

    2. If the ``OS`` environment variable is ``Windows_NT``, then if the ``PATH`` contains a
       semicolon this is native Windows. Otherwise we are running inside a Unix emulation layer
       (Cygwin, MSYS) on top of Windows, and the shortened output of ``uname`` names it.

    3. Otherwise, the output of ``uname`` (e.g., ``Linux`` or ``Darwin``).

    If nothing works, the result is ``Unknown``.
    """
    if override is not None:
        logger.debug('Using the explicit platform: %s', override)
        return override

    if environ is None:
        environ = os.environ

    if environ.get('OS') == WINDOWS_NT:
        if SEMICOLON in environ.get('PATH', ''):
            return WINDOWS
        return shorten_name(system_name())

    return system_name()


def powershell_quote(text: str) -> str:
    """
    Quote a text as a literal (single-quoted) PowerShell string.
    """
    return "'" + text.replace("'", "''") + "'"


class Platform:
    """
    The capabilities of a host platform.
    """

    #: The name of the detected platform.
    name: str

    #: The shell used to run commands.
    shell: str

    #: The separator between directories of a path.
    path_sep: str

    #: The separator between entries of a list of paths (e.g., ``PATH``).
    list_sep: str

    #: For each marker kind, the color (and optional attributes) to print it in.
    colors: Dict[str, Tuple[str, List[str]]]

    def __init__(self, name: str) -> None:
        """
        Create the capabilities for the named platform.
        """
        self.name = name

    def shell_command(self, command: str) -> List[str]:
        """
        Return the arguments for spawning the shell to execute a command.
        """
        raise NotImplementedError()

    def color_text(self, kind: str, text: str, use_color: bool = True) -> str:
        """
        Color a text in the color of the marker ``kind`` (``go``, ``ok``, ``warn``, ``err``).
        """
        if not use_color:
            return text
        color, attrs = self.colors[kind]
        return colored(text, color, attrs=attrs, force_color=True)

    def prompt_text(self, prompt: str, first: str, second: str) -> str:
        """
        Return the text of a confirmation prompt offering two options.
        """
        raise NotImplementedError()

    def is_confirmed(self, response: str, first: str, second: str) -> bool:
        """
        Whether the response to a confirmation prompt chooses the ``first`` option.
        """
        raise NotImplementedError()

    def help_renderer(self) -> HelpRenderer:
        """
        Return the renderer of the help table.
        """
        raise NotImplementedError()

    def clean_command(self, directory: str) -> str:
        """
        Return a command removing all the files in a directory (but not the directory itself).
        """
        raise NotImplementedError()

    def create_directory_command(self, directory: str) -> str:
        """
        Return a command creating a directory (and its parents) if it does not exist.
        """
        raise NotImplementedError()

    def staged_changes_command(self) -> str:
        """
        Return a command whose output is not empty if there are staged changes.
        """
        raise NotImplementedError()


class PosixPlatform(Platform):
    """
    A Unix-like system (including Cygwin and MSYS on top of Windows).
    """

    shell = '/bin/sh'
    path_sep = '/'
    list_sep = COLON
    colors = {'go': ('blue', []),
              'ok': ('green', []),
              'warn': ('yellow', ['bold']),
              'err': ('red', [])}

    def shell_command(self, command: str) -> List[str]:
        return [self.shell, '-c', command]

    def prompt_text(self, prompt: str, first: str, second: str) -> str:
        return '%s [%s/%s] ' % (prompt, first, second)

    def is_confirmed(self, response: str, first: str, second: str) -> bool:
        # Like ``read -r answer && [ ${answer:-$second} = $first ]``.
        answer = response.strip() or second
        return answer == first

    def help_renderer(self) -> HelpRenderer:
        return ColumnRenderer()

    def clean_command(self, directory: str) -> str:
        return 'rm -rf %s/*' % shlex.quote(directory)

    def create_directory_command(self, directory: str) -> str:
        return 'mkdir -p %s' % shlex.quote(directory)

    def staged_changes_command(self) -> str:
        return 'git status --porcelain | grep -E "^(M|A).* "'


class WindowsPlatform(Platform):
    """
    Native Windows, using PowerShell.
    """

    shell = 'pwsh.exe'
    path_sep = '\\'
    list_sep = SEMICOLON
    colors = {'go': ('blue', []),
              'ok': ('green', []),
              'warn': ('yellow', []),
              'err': ('red', [])}

    def shell_command(self, command: str) -> List[str]:
        return [self.shell, '-NoLogo', '-NoProfile', '-NonInteractive', '-Command', command]

    def prompt_text(self, prompt: str, first: str, second: str) -> str:
        return '%s [%s/%s]: ' % (prompt, first, second)

    def is_confirmed(self, response: str, first: str, second: str) -> bool:
        # Like ``(Read-Host ...) -ceq $first``, there is no default answer.
        return response == first

    def help_renderer(self) -> HelpRenderer:
        return TableRenderer()

    def clean_command(self, directory: str) -> str:
        return 'if (Test-Path %s -PathType Container) { Remove-Item %s -Recurse -Force }' \
            % (powershell_quote(directory), powershell_quote(directory + '\\*'))

    def create_directory_command(self, directory: str) -> str:
        return '[void](New-Item %s -ItemType Directory -Force)' % powershell_quote(directory)

    def staged_changes_command(self) -> str:
        return 'if ((git status --porcelain | Out-String) -match "^(M|A).* ") ' \
            '{ "no empty" } else { "" }'


def resolve_platform(name: str) -> Platform:
    """
    Return the capabilities of the named platform.

    An ``Unknown`` (or empty) platform name is fatal, since nothing platform-specific can be done
    without guessing.
    """
    if not name or name == UNKNOWN:
        raise RuntimeError('Unknown operating system')
    if name == WINDOWS:
        return WindowsPlatform(name)
    return PosixPlatform(name)
