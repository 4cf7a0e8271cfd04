"""
Generate the help message listing the tasks.

Each help line is given as a *payload*: the text that follows the ``##`` marker in a definition file
(or that the task registry produces in the same form). The recognized payloads are:

* ``name: description`` for a single-line description.

* ``: description`` for a continuation of a multi-line description, or for a block header.

* ``:`` for an empty line.

Whitespace around the name, the first ``:``, and the description does not matter. Any further
``:`` belongs to the description. A payload without any ``:`` is a name with no description.

There are two independent renderers, one per platform tool chain. Both produce the same text: one
row per payload, in order, indented by one space, with the names padded to the longest name in the
whole listing and the descriptions separated from them by two spaces.
"""

from typing import Iterable
from typing import List
from typing import Sequence
from typing import Tuple

import csv
import re

#: The prefix of the help lines in definition files.
MARKER = '##'


def marker_lines(text: str) -> List[str]:
    """
    Extract the payloads of the help lines of the text of a definition file.
    """
    return [line[len(MARKER):] for line in text.splitlines() if line.startswith(MARKER)]


def read_marker_lines(paths: Iterable[str]) -> List[str]:
    """
    Extract the payloads of the help lines of some definition files, in order.
    """
    payloads: List[str] = []
    for path in paths:
        try:
            with open(path, 'r') as file:
                payloads += marker_lines(file.read())
        except OSError as error:
            raise RuntimeError(  # pylint: disable=raise-missing-from
                'Can not read the help file: %s error: %s' % (path, error))
    return payloads


class HelpRenderer:
    """
    Render help payloads as an aligned table.
    """

    #: The prefix of each row.
    INDENT = ' '

    #: The gap between the name and the description.
    GAP = '  '

    def render(self, payloads: Sequence[str]) -> List[str]:
        """
        Render the payloads, one output line per payload.

        Empty payloads (a bare ``##``) carry no row and are skipped.
        """
        raise NotImplementedError()

    @classmethod
    def _layout(cls, rows: Sequence[Tuple[str, str]]) -> List[str]:
        width = max([len(name) for name, _description in rows], default=0)
        return [(cls.INDENT + name.ljust(width) + cls.GAP + description).rstrip()
                for name, description in rows]


class ColumnRenderer(HelpRenderer):
    """
    Render the help the way ``sed`` and ``column --table --separator :`` do.
    """

    _FIRST_COLON = re.compile(r'[ \t]*:[ \t]*')

    def render(self, payloads: Sequence[str]) -> List[str]:
        rows: List[Tuple[str, str]] = []
        for payload in payloads:
            if not payload:
                continue
            columns = self._FIRST_COLON.sub(':', payload, count=1).split(':', 1)
            if len(columns) == 1:
                columns.append('')
            rows.append((columns[0].strip(), columns[1].strip()))
        return self._layout(rows)


class TableRenderer(HelpRenderer):
    """
    Render the help the way ``ConvertFrom-Csv -Delimiter :`` and ``Format-Table`` do.
    """

    HEADER = ['Target', 'Description']

    def render(self, payloads: Sequence[str]) -> List[str]:
        records = csv.DictReader(payloads, fieldnames=self.HEADER, restkey='Rest',
                                 delimiter=':', quoting=csv.QUOTE_NONE)
        rows: List[Tuple[str, str]] = []
        for record in records:
            fields = [record['Description'] or ''] + record.get('Rest', [])
            rows.append(((record['Target'] or '').strip(), ':'.join(fields).strip()))
        return self._layout(rows)


def render_help(platform_name: str, shell: str, renderer: HelpRenderer,
                payloads: Sequence[str]) -> str:
    """
    Return the complete help message.
    """
    lines = ['', ':: GoMake', ':: OS: %s' % platform_name, ':: SHELL: %s' % shell, '', 'Targets:']
    lines += renderer.render(payloads)
    lines.append('')
    return '\n'.join(lines) + '\n'
