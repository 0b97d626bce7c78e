from concurrent.futures import ThreadPoolExecutor

import pytest

from cmsapp import create_app, db
from cmsapp.models import Post
from cmsapp.services.post_service import increment_views, like_post
from conftest import make_config, create_user, make_post

INCREMENTS = 100


@pytest.fixture
def file_app(tmp_path):
    """多线程需要真实的数据库文件，内存库只有一个连接"""
    database_uri = f"sqlite:///{tmp_path / 'counters.db'}"
    app = create_app(make_config(
        tmp_path,
        database_uri=database_uri,
        SQLALCHEMY_ENGINE_OPTIONS={'connect_args': {'timeout': 30}},
    ))
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def run_concurrently(app, func, post_id):
    def task(_):
        with app.app_context():
            return func(post_id)

    with ThreadPoolExecutor(max_workers=8) as executor:
        return list(executor.map(task, range(INCREMENTS)))


def test_concurrent_view_increments_are_not_lost(file_app):
    author = create_user('writer', 'author')
    post = make_post('Popular', author, views=5)
    post_id = post.id

    results = run_concurrently(file_app, increment_views, post_id)

    db.session.expire_all()
    assert db.session.get(Post, post_id).views == 5 + INCREMENTS
    assert sorted(results) == list(range(6, 6 + INCREMENTS))


def test_concurrent_likes_are_not_lost(file_app):
    author = create_user('writer', 'author')
    post_id = make_post('Liked', author).id

    run_concurrently(file_app, like_post, post_id)

    db.session.expire_all()
    assert db.session.get(Post, post_id).likes == INCREMENTS
