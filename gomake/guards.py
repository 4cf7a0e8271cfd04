"""
Guards that abort the invocation unless some condition holds.
"""

from gomake import Context
from gomake import GuardException
from gomake import logger


def choice_or_error(context: Context, prompt: str, first: str, second: str, message: str) -> None:
    """
    Prompt the user to choose between two options, where the ``second`` one aborts the invocation
    with the error ``message``.

    The platform decides how the response is compared with the options. On Unix-like systems, an
    empty response means the ``second`` option; on Windows, anything other than exactly the
    ``first`` option is a rejection.
    """
    try:
        response = context.input_function(context.platform.prompt_text(prompt, first, second))
    except EOFError:
        response = ''
    if context.platform.is_confirmed(response, first, second):
        logger.debug('Confirmed: %s', prompt)
        return
    context.err(message)
    raise GuardException(message)


def empty_or_error(context: Context, message: str, command: str) -> None:
    """
    Run a command and abort the invocation with the error ``message`` if its output is not empty.

    The exit status of the command is ignored, so a ``grep`` that matches nothing passes.
    """
    if context.capture(command) == '':
        return
    context.err(message)
    raise GuardException(message)
