"""Tests for clipping options and option files."""

import argparse
import logging
import unittest

import pytest

from config_loader import DEFAULT_OPTIONS, ConfigLoader, get_nested, load_options


class TestLoadOptions(unittest.TestCase):

    def test_defaults(self):
        options = load_options()
        self.assertEqual(options, DEFAULT_OPTIONS)
        self.assertEqual(options['title'], '{pageTitle}')
        self.assertEqual(options['disallowedChars'], '[]#^')
        self.assertEqual(options['imagePrefix'], '{pageTitle}/')
        self.assertFalse(options['includeTemplate'])

    def test_defaults_are_copied(self):
        options = load_options()
        options['title'] = 'changed'
        self.assertEqual(DEFAULT_OPTIONS['title'], '{pageTitle}')

    def test_stored_values_override_defaults(self):
        options = load_options({'imageStyle': 'obsidian', 'hr': '---', 'customKey': 1})
        self.assertEqual(options['imageStyle'], 'obsidian')
        self.assertEqual(options['hr'], '---')
        self.assertEqual(options['customKey'], 1)

    def test_invalid_values_reset_to_defaults(self):
        with self.assertLogs('markdown_clipper.config', level='WARNING') as logs:
            options = load_options({
                'headingStyle': 'fancy',
                'fence': '"""',
                'includeTemplate': 'yes',
                'title': '',
                'frontmatter': 42,
                'mdClipsFolder': ['a']
            })
        self.assertEqual(options['headingStyle'], 'atx')
        self.assertEqual(options['fence'], '```')
        self.assertFalse(options['includeTemplate'])
        self.assertEqual(options['title'], '{pageTitle}')
        self.assertEqual(options['frontmatter'], DEFAULT_OPTIONS['frontmatter'])
        self.assertIsNone(options['mdClipsFolder'])
        self.assertTrue(any('headingStyle' in line for line in logs.output))

    def test_non_mapping_is_ignored(self):
        with self.assertLogs('markdown_clipper.config', level='WARNING'):
            self.assertEqual(load_options(['not', 'a', 'dict']), DEFAULT_OPTIONS)

    def test_null_image_prefix_means_no_prefix(self):
        self.assertEqual(load_options({'imagePrefix': None})['imagePrefix'], '')

    def test_tilde_fence_accepted(self):
        self.assertEqual(load_options({'fence': '~~~'})['fence'], '~~~')

    def test_content_link_forced_without_direct_download(self):
        options = load_options({'downloadMode': 'downloadsApi'}, direct_download_available=False)
        self.assertEqual(options['downloadMode'], 'contentLink')


class TestConfigLoader:

    def test_load_options_section_with_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv('CLIP_FOLDER', 'Inbox')
        path = tmp_path / 'options.yaml'
        path.write_text(
            'options:\n'
            '  mdClipsFolder: "${CLIP_FOLDER}/{date:YYYY}"\n'
            '  imageStyle: obsidian\n'
            '  unresolved: "${CLIP_MISSING_VAR}"\n',
            encoding='utf-8'
        )
        options = ConfigLoader.load(str(path))
        assert options == {
            'mdClipsFolder': 'Inbox/{date:YYYY}',
            'imageStyle': 'obsidian',
            'unresolved': '${CLIP_MISSING_VAR}'
        }

    def test_load_top_level_options(self, tmp_path):
        path = tmp_path / 'options.yaml'
        path.write_text('downloadImages: true\nlinkStyle: referenced\n', encoding='utf-8')
        assert ConfigLoader.load(str(path)) == {'downloadImages': True, 'linkStyle': 'referenced'}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(str(tmp_path / 'missing.yaml'))

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- a\n- b\n', encoding='utf-8')
        with pytest.raises(ValueError):
            ConfigLoader.load(str(path))

    def test_merge_with_args(self):
        args = argparse.Namespace(download_images=False, include_template=True,
                                  image_style='noImage', folder='clips')
        merged = ConfigLoader.merge_with_args({'downloadImages': True, 'title': 'x'}, args)
        assert merged == {
            'downloadImages': False,
            'includeTemplate': True,
            'imageStyle': 'noImage',
            'mdClipsFolder': 'clips',
            'title': 'x'
        }

    def test_merge_with_unset_args(self):
        args = argparse.Namespace(download_images=None, include_template=None, image_style=None, folder=None)
        assert ConfigLoader.merge_with_args({'title': 'x'}, args) == {'title': 'x'}

    def test_get_nested(self):
        config = {'options': {'imageStyle': 'base64'}}
        assert get_nested(config, 'options.imageStyle') == 'base64'
        assert get_nested(config, 'options.missing', 'fallback') == 'fallback'


def test_invalid_choice_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger='markdown_clipper.config'):
        load_options({'linkStyle': 'sideways'})
    assert "Invalid linkStyle option 'sideways'" in caplog.text
