"""
Test the guards.
"""

from gomake import GuardException
from gomake.guards import choice_or_error
from gomake.guards import empty_or_error
from gomake.platforms import WindowsPlatform
from tests import TestWithReset

# pylint: disable=missing-docstring,too-many-public-methods


class TestChoiceOrError(TestWithReset):

    def test_accept(self) -> None:
        context = self.new_context(answers=['y'])
        choice_or_error(context, 'Are you sure?', 'y', 'N', 'Abort!')
        self.assertEqual(self.stdout.getvalue(), '')

    def test_empty_is_the_default(self) -> None:
        context = self.new_context(answers=[''])
        self.assertRaisesRegex(GuardException, 'Abort!',
                               choice_or_error, context, 'Are you sure?', 'y', 'N', 'Abort!')
        self.assertEqual(self.stdout.getvalue(), 'x Abort!\n')

    def test_case_sensitive(self) -> None:
        context = self.new_context(answers=['Y'])
        self.assertRaisesRegex(GuardException, 'Abort!',
                               choice_or_error, context, 'Are you sure?', 'y', 'N', 'Abort!')

    def test_end_of_input(self) -> None:
        context = self.new_context()

        def _closed(_prompt: str) -> str:
            raise EOFError()

        context.input_function = _closed
        self.assertRaisesRegex(GuardException, 'Abort!',
                               choice_or_error, context, 'Are you sure?', 'y', 'N', 'Abort!')

    def test_prompt(self) -> None:
        prompts = []

        def _input(prompt: str) -> str:
            prompts.append(prompt)
            return 'y'

        context = self.new_context()
        context.input_function = _input
        choice_or_error(context, 'Are you sure?', 'y', 'N', 'Abort!')
        self.assertEqual(prompts, ['Are you sure? [y/N] '])

    def test_windows_accept(self) -> None:
        context = self.new_context(WindowsPlatform('Windows'), answers=['y'])
        choice_or_error(context, 'Are you sure?', 'y', 'N', 'Abort!')

    def test_windows_does_not_trim(self) -> None:
        context = self.new_context(WindowsPlatform('Windows'), answers=[' y '])
        self.assertRaisesRegex(GuardException, 'Abort!',
                               choice_or_error, context, 'Are you sure?', 'y', 'N', 'Abort!')


class TestEmptyOrError(TestWithReset):

    def test_empty_output(self) -> None:
        context = self.new_context()
        empty_or_error(context, 'Dirty!', 'true')
        self.assertEqual(self.stdout.getvalue(), '')

    def test_failure_with_empty_output(self) -> None:
        context = self.new_context()
        empty_or_error(context, 'Dirty!', 'echo nothing | grep -E "^(M|A).* "')
        self.assertEqual(self.stdout.getvalue(), '')

    def test_non_empty_output(self) -> None:
        context = self.new_context()
        self.assertRaisesRegex(GuardException, 'Dirty!',
                               empty_or_error, context, 'Dirty!', 'echo " M main.go"')
        self.assertEqual(self.stdout.getvalue(), 'x Dirty!\n')

    def test_non_empty_output_of_failure(self) -> None:
        context = self.new_context()
        self.assertRaisesRegex(GuardException, 'Dirty!',
                               empty_or_error, context, 'Dirty!', 'echo changed; exit 1')
