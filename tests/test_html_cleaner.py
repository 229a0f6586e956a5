"""Tests for HTML cleanup before conversion."""

import unittest

from bs4 import BeautifulSoup

from converters.html_cleaner import HtmlCleaner, strip_non_printing


class TestHtmlCleaner(unittest.TestCase):
    def setUp(self):
        self.cleaner = HtmlCleaner()

    def clean(self, html):
        return self.cleaner.clean(BeautifulSoup(html, 'lxml'))

    def test_removes_non_content_tags(self):
        soup = self.clean('<p>Text</p><script>x()</script><style>p{}</style><template><p>T</p></template>')
        self.assertIsNone(soup.find('script'))
        self.assertIsNone(soup.find('style'))
        self.assertIsNone(soup.find('template'))
        self.assertEqual(soup.get_text(), 'Text')

    def test_removes_comments(self):
        soup = self.clean('<p>Text<!-- note --></p>')
        self.assertNotIn('note', str(soup))

    def test_removes_event_handlers(self):
        soup = self.clean('<p onclick="steal()" class="lead" ONMOUSEOVER="x()">Text</p>')
        self.assertEqual(soup.find('p').attrs, {'class': ['lead']})

    def test_removes_empty_elements(self):
        soup = self.clean('<div></div><span> </span><p>Kept</p><div class="spacer"></div>')
        self.assertEqual(len(soup.find_all('div')), 1)
        self.assertIsNone(soup.find('span'))
        self.assertIsNotNone(soup.find('p'))

    def test_keeps_elements_with_images(self):
        soup = self.clean('<p><img src="a.png"></p>')
        self.assertIsNotNone(soup.find('img'))


class TestStripNonPrinting(unittest.TestCase):

    def test_strips_zero_width_and_controls(self):
        text = 'a' + chr(0x200b) + 'b' + chr(0x7) + 'c' + chr(0x2028) + 'd'
        self.assertEqual(strip_non_printing(text), 'abcd')

    def test_keeps_whitespace(self):
        self.assertEqual(strip_non_printing('a\tb\nc\r\n'), 'a\tb\nc\r\n')


if __name__ == '__main__':
    unittest.main()
