from django.test import SimpleTestCase

from core.validators import is_valid_email, is_valid_phone
from quotes.utils import MAX_SANITIZED_LENGTH, normalize_email, sanitize_input, sanitize_search_query


class SanitizeInputTests(SimpleTestCase):

    def test_strips_markup(self):
        self.assertEqual(sanitize_input('<b>Amina</b> Mahamat'), 'Amina Mahamat')
        self.assertEqual(sanitize_input('Need <a site> fast'), 'Need  fast')
        self.assertEqual(sanitize_input('budget > 500000'), 'budget  500000')

    def test_trims_and_removes_control_characters(self):
        self.assertEqual(sanitize_input('  hello\x00world\x07 \r\n'), 'helloworld')
        self.assertEqual(sanitize_input('line one\nline\ttwo'), 'line one\nline\ttwo')

    def test_caps_length(self):
        self.assertEqual(len(sanitize_input('a' * (MAX_SANITIZED_LENGTH + 500))), MAX_SANITIZED_LENGTH)

    def test_non_strings_become_empty(self):
        for value in (None, 42, ['x'], {'a': 1}):
            self.assertEqual(sanitize_input(value), '')

    def test_search_query(self):
        self.assertEqual(sanitize_search_query('  <i>site web</i>  '), 'site web')
        self.assertEqual(len(sanitize_search_query('x' * 300)), 100)
        self.assertEqual(sanitize_search_query(None), '')

    def test_normalize_email(self):
        self.assertEqual(normalize_email('  Foo@BAR.com '), 'foo@bar.com')
        self.assertEqual(normalize_email(None), '')


class ValidatorTests(SimpleTestCase):

    def test_email(self):
        self.assertTrue(is_valid_email('contact@experiencetech-tchad.com'))
        self.assertTrue(is_valid_email('Foo@BAR.com'))
        for value in ('', 'plain', 'a@b', 'a b@c.com', '@c.com', None):
            self.assertFalse(is_valid_email(value), value)

    def test_phone(self):
        for value in ('+23566000000', '66000000', '1'):
            self.assertTrue(is_valid_phone(value), value)
        for value in ('', '0123456', '+0123', '12345678901234567', '66 00 00 00', 'abc', None):
            self.assertFalse(is_valid_phone(value), value)
