import pytest

from cmsapp.models import Category
from cmsapp.utils.slug_generator import slugify, is_valid_slug, generate_unique_slug
from conftest import make_category


@pytest.mark.parametrize('text, expected', [
    ('Tech & Science!', 'tech-science'),
    ('  Hello   World  ', 'hello-world'),
    ('already-a-slug', 'already-a-slug'),
    ('Multiple---Hyphens', 'multiple-hyphens'),
    ('--Leading and trailing--', 'leading-and-trailing'),
    ('Café Crème', 'cafe-creme'),
    ('Python 3.12 Release', 'python-312-release'),
    ('!!!', ''),
])
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_slugify_transliterates_chinese():
    assert slugify('人工智能') == 'ren-gong-zhi-neng'


def test_slugify_is_idempotent():
    once = slugify('Tech & Science!')
    assert slugify('Tech & Science!') == once
    assert slugify(once) == once


def test_is_valid_slug():
    assert is_valid_slug('tech-science')
    assert not is_valid_slug('Tech Science')
    assert not is_valid_slug('')


def test_generate_unique_slug_appends_counter(app, users):
    make_category('News', users['admin'])
    make_category('News 1', users['admin'], slug='news-1')

    assert generate_unique_slug('news', Category) == 'news-2'
    assert generate_unique_slug('sports', Category) == 'sports'


def test_generate_unique_slug_excludes_self(app, users):
    category = make_category('News', users['admin'])
    assert generate_unique_slug('news', Category, exclude_id=category.id) == 'news'
