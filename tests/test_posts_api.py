from cmsapp import db
from cmsapp.models import Post
from conftest import make_category, make_post


def test_author_creates_post_with_derived_fields(client, users, headers):
    content = '<p>' + 'word ' * 100 + '</p>'
    resp = client.post('/api/posts', json={
        'title': 'My First Post',
        'content': content,
        'tags': ['python', 'flask', 'python'],
        'status': 'published',
    }, headers=headers['author'])

    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['slug'] == 'my-first-post'
    assert data['author']['id'] == users['author'].id
    assert data['tags'] == ['python', 'flask']
    assert data['published_at'] is not None
    assert data['excerpt'].endswith('...')
    assert '<p>' not in data['excerpt']
    assert len(data['excerpt']) <= 203


def test_reader_cannot_create_post(client, headers):
    resp = client.post('/api/posts', json={'title': 'Nope', 'content': 'x'}, headers=headers['reader'])
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'insufficient_role'


def test_anonymous_cannot_create_post(client, users):
    resp = client.post('/api/posts', json={'title': 'Nope', 'content': 'x'})
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'unauthenticated'


def test_inactive_user_is_unauthenticated(client, headers):
    resp = client.post('/api/posts', json={'title': 'Nope', 'content': 'x'}, headers=headers['inactive'])
    assert resp.status_code == 401


def test_invalid_token(client, users):
    resp = client.post('/api/posts', json={'title': 'Nope', 'content': 'x'},
                       headers={'Authorization': 'Bearer not-a-token'})
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'unauthenticated'


def test_validation_errors(client, headers):
    resp = client.post('/api/posts', json={'title': '', 'status': 'live', 'category_id': 999},
                       headers=headers['author'])
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] == 'validation_failed'
    assert {'title', 'content', 'status'} <= set(body['errors'])


def test_author_cannot_edit_other_authors_post_but_admin_can(client, users, headers):
    post = make_post('Owned', users['other_author'])

    resp = client.put(f'/api/posts/{post.id}', json={'title': 'Hijacked'}, headers=headers['author'])
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'not_owner'

    resp = client.put(f'/api/posts/{post.id}', json={'title': 'Edited by admin'}, headers=headers['admin'])
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['title'] == 'Edited by admin'
    assert data['author']['id'] == users['other_author'].id


def test_editor_is_bound_by_ownership(client, users, headers):
    post = make_post('Owned', users['author'])
    resp = client.delete(f'/api/posts/{post.id}', headers=headers['editor'])
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'not_owner'


def test_update_keeps_slug_excerpt_author_and_published_at(client, users, headers):
    resp = client.post('/api/posts', json={'title': 'Stable Slug', 'content': 'Body', 'status': 'published'},
                       headers=headers['author'])
    created = resp.get_json()['data']

    resp = client.put(f"/api/posts/{created['id']}", json={
        'title': 'Completely Different',
        'content': 'New body',
        'author_id': users['other_author'].id,
        'status': 'archived',
    }, headers=headers['author'])
    data = resp.get_json()['data']
    assert data['slug'] == 'stable-slug'
    assert data['excerpt'] == 'Body'
    assert data['author']['id'] == users['author'].id
    assert data['published_at'] == created['published_at']

    resp = client.put(f"/api/posts/{created['id']}", json={'status': 'published'}, headers=headers['author'])
    assert resp.get_json()['data']['published_at'] == created['published_at']


def test_published_at_set_on_first_publish(client, headers):
    resp = client.post('/api/posts', json={'title': 'Draft', 'content': 'Body'}, headers=headers['author'])
    data = resp.get_json()['data']
    assert data['status'] == 'draft'
    assert data['published_at'] is None

    resp = client.put(f"/api/posts/{data['id']}", json={'status': 'published'}, headers=headers['author'])
    assert resp.get_json()['data']['published_at'] is not None


def test_duplicate_titles_get_suffixed_slugs(client, headers):
    first = client.post('/api/posts', json={'title': 'Same', 'content': 'a'}, headers=headers['author'])
    second = client.post('/api/posts', json={'title': 'Same', 'content': 'b'}, headers=headers['author'])
    assert first.get_json()['data']['slug'] == 'same'
    assert second.get_json()['data']['slug'] == 'same-1'


def test_explicit_slug_collision_is_rejected(client, users, headers):
    make_post('Existing', users['author'], slug='taken')
    resp = client.post('/api/posts', json={'title': 'Other', 'content': 'a', 'slug': 'taken'},
                       headers=headers['author'])
    assert resp.status_code == 400
    assert 'slug' in resp.get_json()['errors']


def test_anonymous_and_reader_only_see_published(client, users, headers):
    make_post('Public', users['author'])
    draft = make_post('Secret', users['author'], status='draft')

    for request_headers in ({}, headers['reader']):
        resp = client.get('/api/posts', headers=request_headers)
        titles = [post['title'] for post in resp.get_json()['data']]
        assert titles == ['Public']
        assert client.get(f'/api/posts/{draft.id}', headers=request_headers).status_code == 404

    resp = client.get('/api/posts', query_string={'status': 'draft'}, headers=headers['editor'])
    assert [post['title'] for post in resp.get_json()['data']] == ['Secret']
    assert client.get(f'/api/posts/{draft.id}', headers=headers['editor']).status_code == 200


def test_list_filters_and_search(client, users):
    tech = make_category('Tech', users['admin'])
    make_post('Python tips', users['author'], category=tech, tags=['python'], is_featured=True)
    make_post('Cooking pasta', users['other_author'], tags=['food'], content='Boil water with salt')
    make_post('Rust notes', users['author'], category=tech, excerpt='systems language')

    def titles(**params):
        resp = client.get('/api/posts', query_string=params)
        assert resp.status_code == 200
        return sorted(post['title'] for post in resp.get_json()['data'])

    assert titles(category=tech.id) == ['Python tips', 'Rust notes']
    assert titles(category='tech') == ['Python tips', 'Rust notes']
    assert titles(author=users['other_author'].id) == ['Cooking pasta']
    assert titles(tag='python') == ['Python tips']
    assert titles(featured='true') == ['Python tips']
    assert titles(search='SALT') == ['Cooking pasta']
    assert titles(search='systems') == ['Rust notes']
    assert titles(search='python tips') == ['Python tips']
    assert titles(search='python rust') == ['Python tips', 'Rust notes']


def test_tag_filter_matches_non_ascii_tags(client, users):
    make_post('Plain', users['author'], tags=['python'])
    make_post('Accented', users['author'], tags=['café', 'coffee'])
    make_post('Chinese', users['author'], tags=['中文'])

    def titles(tag):
        resp = client.get('/api/posts', query_string={'tag': tag})
        assert resp.status_code == 200
        return [post['title'] for post in resp.get_json()['data']]

    assert titles('café') == ['Accented']
    assert titles('中文') == ['Chinese']
    assert titles('caf') == []
    assert titles('coffee') == ['Accented']


def test_relevance_sort_ranks_posts_matching_more_words_first(client, users):
    make_post('Python only', users['author'], content='nothing else')
    make_post('Python and Rust', users['author'], content='both languages')

    resp = client.get('/api/posts', query_string={'search': 'python rust', 'sort': 'relevance'})
    assert [post['title'] for post in resp.get_json()['data']] == ['Python and Rust', 'Python only']


def test_relevance_sort_prefers_title_matches(client, users):
    make_post('Unrelated', users['author'], content='flask appears only in the body')
    make_post('Flask in the title', users['author'], content='body text')

    resp = client.get('/api/posts', query_string={'search': 'flask', 'sort': 'relevance'})
    assert [post['title'] for post in resp.get_json()['data']] == ['Flask in the title', 'Unrelated']


def test_unknown_sort_field(client, users):
    resp = client.get('/api/posts', query_string={'sort': '-password'})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'validation_failed'


def test_pagination_covers_every_post_once(client, users):
    for i in range(23):
        make_post(f'Post {i:02d}', users['author'])

    seen = []
    first = client.get('/api/posts', query_string={'page': 1, 'limit': 5}).get_json()
    total = first['pagination']['total']
    pages = first['pagination']['pages']
    assert total == 23 and pages == 5

    for page in range(1, pages + 1):
        resp = client.get('/api/posts', query_string={'page': page, 'limit': 5})
        seen.extend(post['id'] for post in resp.get_json()['data'])

    assert len(seen) == total
    assert len(set(seen)) == total

    beyond = client.get('/api/posts', query_string={'page': 9, 'limit': 5}).get_json()
    assert beyond['data'] == []
    assert beyond['pagination']['total'] == 23


def test_get_by_slug_and_increment_views(client, users):
    post = make_post('Read me', users['author'])
    resp = client.get('/api/posts/slug/read-me', query_string={'increment_views': 'true'})
    assert resp.status_code == 200
    assert resp.get_json()['data']['views'] == 1

    resp = client.get(f'/api/posts/{post.id}')
    assert resp.get_json()['data']['views'] == 1


def test_like_and_view_counters(client, users):
    post = make_post('Counted', users['author'])
    assert client.post(f'/api/posts/{post.id}/like').get_json()['data']['likes'] == 1
    assert client.post(f'/api/posts/{post.id}/like').get_json()['data']['likes'] == 2
    assert client.post(f'/api/posts/{post.id}/view').get_json()['data']['views'] == 1
    assert client.post('/api/posts/9999/like').status_code == 404


def test_owner_deletes_post(client, users, headers):
    post = make_post('Delete me', users['author'])
    post_id = post.id
    resp = client.delete(f'/api/posts/{post_id}', headers=headers['author'])
    assert resp.status_code == 200
    db.session.expire_all()
    assert Post.query.filter_by(id=post_id).first() is None
