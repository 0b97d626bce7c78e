from datetime import datetime, timedelta

from cmsapp import db
from cmsapp.models import Media
from cmsapp.utils.error_handler import ErrorHandler
from conftest import make_category, make_post


def add_media(user, mimetype, size, created_at=None):
    media = Media(
        filename='f', original_name='f', mimetype=mimetype, size=size,
        path='/tmp/f', url='/uploads/f', uploaded_by=user.id,
        created_at=created_at or datetime.utcnow(),
    )
    db.session.add(media)
    db.session.commit()
    return media


def test_stats_requires_editor_or_admin(client, headers):
    assert client.get('/api/dashboard/stats', headers=headers['author']).status_code == 403
    assert client.get('/api/dashboard/stats').status_code == 401
    assert client.get('/api/dashboard/stats', headers=headers['editor']).status_code == 200


def test_dashboard_stats(client, users, headers):
    category = make_category('News', users['admin'])
    make_post('One', users['author'], category=category, views=10, likes=2)
    make_post('Two', users['author'], status='draft', views=3)
    make_post('Three', users['other_author'], status='archived')
    add_media(users['author'], 'image/png', 100)
    add_media(users['author'], 'application/pdf', 50)
    add_media(users['author'], 'text/plain', 5)

    stats = client.get('/api/dashboard/stats', headers=headers['admin']).get_json()['data']

    overview = stats['overview']
    assert overview['total_posts'] == 3
    assert overview['total_categories'] == 1
    assert overview['total_users'] == 6
    assert overview['active_users'] == 5
    assert overview['total_media'] == 3
    assert overview['total_views'] == 13
    assert overview['total_likes'] == 2
    assert stats['posts_by_status'] == {'draft': 1, 'published': 1, 'archived': 1}
    assert stats['users_by_role'] == {'admin': 1, 'editor': 2, 'author': 2, 'reader': 1}
    assert stats['media_by_type']['document'] == {'count': 2, 'size': 55}
    assert stats['media_by_type']['image'] == {'count': 1, 'size': 100}
    assert [post['title'] for post in stats['popular_posts']] == ['One']


def test_content_stats_scope(client, users, headers):
    make_post('Mine', users['author'], views=4)
    make_post('Mine draft', users['author'], status='draft')
    make_post('Theirs', users['other_author'], views=6)

    own = client.get('/api/dashboard/content-stats', headers=headers['author']).get_json()['data']
    assert own['scope'] == 'own'
    assert own['total_posts'] == 2
    assert own['posts_by_status']['draft'] == 1
    assert own['total_views'] == 4

    everything = client.get('/api/dashboard/content-stats', headers=headers['admin']).get_json()['data']
    assert everything['scope'] == 'all'
    assert everything['total_posts'] == 3
    assert everything['total_views'] == 10


def test_analytics_buckets_by_day(client, users, headers):
    now = datetime.utcnow()
    add_media(users['author'], 'image/png', 1, created_at=now)
    add_media(users['author'], 'image/png', 1, created_at=now)
    add_media(users['author'], 'image/png', 1, created_at=now - timedelta(days=2))
    add_media(users['author'], 'image/png', 1, created_at=now - timedelta(days=30))

    resp = client.get('/api/dashboard/analytics', query_string={'period': 7, 'type': 'media'},
                      headers=headers['editor'])
    data = resp.get_json()['data']

    assert data['type'] == 'media'
    assert len(data['data']) == 7
    assert data['data'][-1] == {'date': now.strftime('%Y-%m-%d'), 'count': 2}
    assert data['data'][-3]['count'] == 1
    assert data['total'] == 3


def test_analytics_rejects_unknown_type(client, headers):
    resp = client.get('/api/dashboard/analytics', query_string={'type': 'comments'}, headers=headers['admin'])
    assert resp.status_code == 400
    assert 'type' in resp.get_json()['errors']


def test_error_stats_admin_only(client, users, headers):
    ErrorHandler.reset_stats()
    client.get('/api/posts/999')
    client.get('/api/dashboard/errors', headers=headers['editor'])

    assert client.get('/api/dashboard/errors', headers=headers['editor']).status_code == 403
    resp = client.get('/api/dashboard/errors', headers=headers['admin'])
    stats = resp.get_json()['data']
    assert stats['by_code'].get('404') == 1 or stats['by_code'].get(404) == 1
    assert stats['by_kind']['insufficient_role'] == 2
    assert '/api/posts/{id}' in stats['by_endpoint']

    assert client.delete('/api/dashboard/errors', headers=headers['admin']).get_json()['success'] is True
