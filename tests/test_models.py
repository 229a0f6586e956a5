"""Tests for data models."""

import unittest

from models import Article, ErrorKind, ExportOutcome, ImageStyle, ResourceResult


class TestArticle(unittest.TestCase):

    def test_from_dict_maps_camel_case(self):
        article = Article.from_dict({
            'pageTitle': 'Page',
            'baseURI': 'https://example.com/',
            'keywords': ['a'],
            'siteName': 'Example',
            'dir': 'ltr'
        })
        self.assertEqual(article.page_title, 'Page')
        self.assertEqual(article.base_uri, 'https://example.com/')
        self.assertEqual(article.keywords, ['a'])
        self.assertEqual(article.site_name, 'Example')
        self.assertEqual(article.extra, {'dir': 'ltr'})

    def test_from_dict_ignores_null_strings(self):
        article = Article.from_dict({'title': None, 'byline': None, 'content': '<p>x</p>'})
        self.assertEqual(article.title, '')
        self.assertEqual(article.byline, '')
        self.assertEqual(article.content, '<p>x</p>')

    def test_template_fields_exclude_content(self):
        fields = Article(page_title='P', content='<p>x</p>', extra={'lang': 'en'}).template_fields()
        self.assertNotIn('content', fields)
        self.assertEqual(fields['pageTitle'], 'P')
        self.assertEqual(fields['lang'], 'en')

    def test_to_dict_round_trip(self):
        data = {'pageTitle': 'P', 'baseURI': 'https://example.com/', 'lang': 'en'}
        self.assertEqual(Article.from_dict(Article.from_dict(data).to_dict()), Article.from_dict(data))


class TestOutcome(unittest.TestCase):

    def test_partial_failure(self):
        outcome = ExportOutcome(success=True, document_filename='A.md', resource_results=[
            ResourceResult(resource='document', success=True, filename='A.md'),
            ResourceResult(resource='https://x.test/a.png', success=False, filename='a.png',
                           error=ErrorKind.NETWORK, message='timeout')
        ])
        self.assertTrue(outcome.partial_failure)
        self.assertEqual(len(outcome.failed_resources), 1)
        self.assertEqual(outcome.to_dict()['resources'][1]['error'], 'network')

    def test_failed_document_is_not_partial(self):
        outcome = ExportOutcome(success=False, document_filename='A.md', error='boom', resource_results=[
            ResourceResult(resource='document', success=False, filename='A.md', error=ErrorKind.EXPORT)
        ])
        self.assertFalse(outcome.partial_failure)

    def test_obsidian_styles(self):
        self.assertTrue(ImageStyle.OBSIDIAN.is_obsidian)
        self.assertTrue(ImageStyle('obsidian-nofolder').is_obsidian)
        self.assertFalse(ImageStyle.MARKDOWN.is_obsidian)


if __name__ == '__main__':
    unittest.main()
