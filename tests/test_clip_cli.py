"""Tests for the command line entry point."""

import json
import logging

import pytest

import clip
from logger import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def write_json(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')
    return str(path)


ARTICLE = {
    'pageTitle': 'CLI Page',
    'title': 'CLI Page',
    'content': '<h1>CLI Page</h1><p>Body text</p>',
    'baseURI': 'https://example.com/cli'
}


class TestParser:

    def test_defaults(self):
        args = clip.create_argument_parser().parse_args(['a.json'])
        assert args.articles == ['a.json']
        assert args.download_images is None
        assert args.include_template is None
        assert args.max_workers == 4

    def test_boolean_flags(self):
        args = clip.create_argument_parser().parse_args(['a.json', '--no-download-images', '--include-template'])
        assert args.download_images is False
        assert args.include_template is True


class TestReadArticles:

    def test_single_object(self, tmp_path):
        assert clip.read_articles(write_json(tmp_path / 'a.json', ARTICLE)) == [ARTICLE]

    def test_list(self, tmp_path):
        assert len(clip.read_articles(write_json(tmp_path / 'a.json', [ARTICLE, ARTICLE]))) == 2

    def test_invalid_shape(self, tmp_path):
        with pytest.raises(ValueError):
            clip.read_articles(write_json(tmp_path / 'a.json', ['text']))


class TestMain:

    def test_exports_article(self, tmp_path, capsys):
        source = write_json(tmp_path / 'article.json', ARTICLE)
        out = tmp_path / 'out'
        report = tmp_path / 'report.json'

        code = clip.main([source, '--output-dir', str(out), '--include-template', '--report', str(report)])

        assert code == 0
        document = (out / 'CLI Page.md').read_text(encoding='utf-8')
        assert document.startswith('---\n')
        assert 'source: https://example.com/cli' in document
        assert '# CLI Page\n\nBody text' in document
        assert json.loads(report.read_text(encoding='utf-8'))['summary']['documents_exported'] == 1
        assert 'CLIP EXPORT REPORT' in capsys.readouterr().out

    def test_config_file_and_folder(self, tmp_path):
        source = write_json(tmp_path / 'article.json', ARTICLE)
        config = tmp_path / 'options.yaml'
        config.write_text('options:\n  title: "{pageTitle:kebab}"\n', encoding='utf-8')
        out = tmp_path / 'out'

        code = clip.main([source, '--config', str(config), '--output-dir', str(out), '--folder', 'inbox'])

        assert code == 0
        assert (out / 'inbox' / 'cli-page.md').exists()

    def test_content_link_mode_prints_links(self, tmp_path, capsys):
        source = write_json(tmp_path / 'article.json', ARTICLE)
        config = tmp_path / 'options.yaml'
        config.write_text('downloadMode: contentLink\n', encoding='utf-8')
        out = tmp_path / 'out'

        assert clip.main([source, '--config', str(config), '--output-dir', str(out)]) == 0
        assert 'CLI Page.md\tdata:text/markdown' in capsys.readouterr().out
        assert not (out / 'CLI Page.md').exists()

    def test_unreadable_article_fails_run(self, tmp_path):
        code = clip.main([str(tmp_path / 'missing.json'), '--output-dir', str(tmp_path / 'out')])
        assert code == 1

    def test_missing_config(self, tmp_path, capsys):
        source = write_json(tmp_path / 'article.json', ARTICLE)
        code = clip.main([source, '--config', str(tmp_path / 'nope.yaml'), '--output-dir', str(tmp_path)])
        assert code == 2
        assert 'File not found' in capsys.readouterr().err
