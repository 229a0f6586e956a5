"""Tests for placeholder substitution in titles and front-matter templates."""

from datetime import datetime, timedelta, timezone

import pytest

from converters.template_engine import MomentFormatter, strip_unsafe_content, text_replace
from models import Article

NOW = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)


@pytest.fixture
def article():
    return Article(
        title='Hello',
        page_title='Hello World',
        byline='Jane Doe',
        excerpt='Short summary',
        base_uri='https://www.example.com/post/1',
        keywords=['python', 'markdown']
    )


class TestFieldSubstitution:
    """Plain placeholders."""

    def test_page_title(self, article):
        assert text_replace('{pageTitle}', article) == 'Hello World'

    def test_multiple_fields(self, article):
        assert text_replace('{pageTitle} by {byline}', article) == 'Hello World by Jane Doe'

    def test_mapping_input(self):
        assert text_replace('{pageTitle}', {'pageTitle': 'From Mapping'}) == 'From Mapping'

    def test_extra_fields_from_extractor(self):
        article = Article.from_dict({'pageTitle': 'x', 'lang': 'en'})
        assert text_replace('{pageTitle}-{lang}', article) == 'x-en'

    def test_unknown_placeholder_is_kept(self, article):
        assert text_replace('{pageTitle} {nope}', article) == 'Hello World {nope}'

    def test_escaped_braces(self, article):
        assert text_replace('\\{pageTitle\\} is {pageTitle}', article) == '{pageTitle} is Hello World'

    def test_domain(self, article):
        assert text_replace('{domain}', article) == 'www.example.com'

    def test_disallowed_characters_removed(self, article):
        assert text_replace('{pageTitle} #1', article, '#') == 'Hello World 1'


class TestModifiers:
    """Case and format modifiers."""

    @pytest.mark.parametrize('modifier, expected', [
        ('upper', 'HELLO WORLD'),
        ('lower', 'hello world'),
        ('kebab', 'hello-world'),
        ('mixed-kebab', 'Hello-World'),
        ('snake', 'hello_world'),
        ('mixed_snake', 'Hello_World'),
        ('obsidian-cal', 'Hello-World'),
        ('camel', 'helloWorld'),
        ('pascal', 'HelloWorld'),
    ])
    def test_modifier(self, article, modifier, expected):
        assert text_replace('{pageTitle:%s}' % modifier, article) == expected

    def test_unknown_modifier_leaves_value(self, article):
        assert text_replace('{pageTitle:sparkle}', article) == 'Hello World'


class TestDates:
    """{date:...} placeholders with a fixed clock."""

    def test_iso_like_format(self, article):
        assert text_replace('{date:YYYY-MM-DDTHH:mm:ss}', article, now=NOW) == '2024-03-05T07:08:09'

    def test_short_date(self, article):
        assert text_replace('{date:YYYY-MM-DD}', article, now=NOW) == '2024-03-05'

    def test_utc_offset(self, article):
        assert text_replace('{date:Z}', article, now=NOW) == '+00:00'
        plus_two = NOW.astimezone(timezone(timedelta(hours=2)))
        assert text_replace('{date:ZZ}', article, now=plus_two) == '+0200'

    def test_ordinal_and_twelve_hour_clock(self, article):
        assert text_replace('{date:Do h:mm A}', article, now=NOW) == '5th 7:08 AM'

    def test_bracketed_literal(self, article):
        assert text_replace('{date:[at] HH}', article, now=NOW) == 'at 07'

    def test_unrecognized_format_uses_default(self, article):
        assert text_replace('{date:hello}', article, now=NOW) == '2024-03-05T07:08:09'

    def test_published_time_format(self):
        article = Article(page_title='P', published_time='2023-11-20T18:30:00Z')
        assert text_replace('{publishedTime:YYYY-MM-DD}', article, now=NOW) == '2023-11-20'
        assert text_replace('{publishedTime:HH:mm Z}', article, now=NOW) == '18:30 +00:00'

    def test_published_time_plain_and_modifiers(self):
        article = Article(page_title='P', published_time='2023-11-20')
        assert text_replace('{publishedTime}', article) == '2023-11-20'
        assert text_replace('{publishedTime:upper}', article) == '2023-11-20'
        assert text_replace('{publishedTime:Do [of] MM}', article) == '20th of 11'

    def test_unparsable_published_time_is_kept(self):
        article = Article(page_title='P', published_time='last Tuesday')
        assert text_replace('{publishedTime:YYYY}', article) == 'last Tuesday'
        assert text_replace('{publishedTime:YYYY}', Article(page_title='P')) == 'P'

    def test_has_tokens(self):
        formatter = MomentFormatter()
        assert formatter.has_tokens('YYYY-MM-DD')
        assert not formatter.has_tokens('hello')
        assert not formatter.has_tokens('')


class TestKeywords:

    def test_default_separator(self, article):
        assert text_replace('{keywords}', article) == 'python, markdown'

    def test_custom_separator(self, article):
        assert text_replace('{keywords: | }', article) == 'python | markdown'

    def test_missing_keywords_render_empty(self):
        article = Article(page_title='Untagged')
        assert text_replace('tags: [{keywords}]', article) == 'tags: []'

    def test_non_list_keywords_render_empty(self):
        article = Article(page_title='Odd', keywords='not-a-list')
        assert text_replace('tags: [{keywords}]', article) == 'tags: []'


class TestFallbacks:

    def test_none_template_uses_page_title(self, article):
        assert text_replace(None, article) == 'Hello World'

    def test_blank_template_uses_page_title(self, article):
        assert text_replace('   ', article) == 'Hello World'

    def test_empty_rendering_falls_back_to_page_title(self):
        assert text_replace('{byline}', Article(page_title='Fallback')) == 'Fallback'

    def test_falls_back_to_title_then_download(self):
        assert text_replace('{byline}', Article(title='Only Title')) == 'Only Title'
        assert text_replace('{byline}', Article()) == 'download'

    def test_punctuation_only_rendering_falls_back(self):
        assert text_replace('{byline} - ', Article(page_title='P')) == 'P'


class TestUnsafeContent:

    def test_script_blocks_removed(self):
        article = Article(page_title='<script>alert(1)</script>Clean')
        assert text_replace('{pageTitle}', article) == 'Clean'

    def test_script_scheme_removed(self):
        assert strip_unsafe_content('javascript:alert(1)') == 'alert(1)'

    def test_event_handlers_removed(self):
        assert strip_unsafe_content('<b onclick="x()">bold</b>') == '<b >bold</b>'
