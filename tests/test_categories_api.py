from cmsapp import db
from cmsapp.models import Category, Post
from conftest import make_category, make_post


def test_only_admin_and_editor_manage_categories(client, users, headers):
    resp = client.post('/api/categories', json={'name': 'Nope'}, headers=headers['author'])
    assert resp.status_code == 403
    assert resp.get_json()['error'] == 'insufficient_role'

    assert client.post('/api/categories', json={'name': 'Nope'}).status_code == 401

    resp = client.post('/api/categories', json={'name': 'Editors Pick'}, headers=headers['editor'])
    assert resp.status_code == 201
    assert resp.get_json()['data']['slug'] == 'editors-pick'

    category_id = resp.get_json()['data']['id']
    resp = client.delete(f'/api/categories/{category_id}', headers=headers['reader'])
    assert resp.status_code == 403


def test_category_lifecycle_over_http(client, users, headers):
    resp = client.post('/api/categories', json={'name': 'Tech & Science!'}, headers=headers['admin'])
    assert resp.status_code == 201
    parent = resp.get_json()['data']
    assert parent['slug'] == 'tech-science'

    resp = client.post('/api/categories', json={'name': 'Physics', 'parent_id': parent['id']},
                       headers=headers['admin'])
    assert resp.status_code == 201
    child = resp.get_json()['data']
    assert child['parent']['id'] == parent['id']

    post = make_post('Quantum basics', users['author'], category=db.session.get(Category, parent['id']))
    post_id = post.id

    resp = client.get(f"/api/categories/{parent['id']}")
    data = resp.get_json()['data']
    assert data['post_count'] == 1
    assert [c['id'] for c in data['children']] == [child['id']]

    resp = client.get('/api/categories/slug/tech-science')
    assert resp.status_code == 200
    assert resp.get_json()['data']['id'] == parent['id']

    resp = client.delete(f"/api/categories/{parent['id']}", headers=headers['editor'])
    assert resp.status_code == 400
    body = resp.get_json()
    assert body['error'] == 'has_posts'
    assert body['post_count'] == 1

    resp = client.delete(f"/api/categories/{parent['id']}", query_string={'force': 'true'},
                         headers=headers['editor'])
    assert resp.status_code == 200
    assert resp.get_json()['cleared_posts'] == 1

    db.session.expire_all()
    assert db.session.get(Category, parent['id']) is None
    assert db.session.get(Category, child['id']).parent_id is None
    assert db.session.get(Post, post_id).category_id is None
    assert client.get('/api/categories/slug/tech-science').status_code == 404


def test_self_parent_rejected_over_http(client, users, headers):
    category = make_category('Loop', users['admin'])
    resp = client.put(f'/api/categories/{category.id}', json={'parent_id': category.id}, headers=headers['admin'])
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'self_parent'


def test_hierarchy_endpoint_prunes_empty_categories(client, users):
    root = make_category('Root', users['admin'], order=1)
    empty = make_category('Empty', users['admin'], parent=root)
    leaf = make_category('Leaf', users['admin'], parent=empty)
    make_category('Lonely', users['admin'], order=2)
    make_post('Rooted', users['author'], category=root)
    make_post('Leafy', users['author'], category=leaf)

    resp = client.get('/api/categories/hierarchy')
    tree = resp.get_json()['data']
    assert [node['name'] for node in tree] == ['Root', 'Lonely']
    assert [node['name'] for node in tree[0]['children']] == ['Empty']

    resp = client.get('/api/categories/hierarchy', query_string={'include_empty': 'false'})
    tree = resp.get_json()['data']
    assert [node['name'] for node in tree] == ['Root']
    assert [node['name'] for node in tree[0]['children']] == ['Leaf']
    assert tree[0]['children'][0]['post_count'] == 1


def test_list_categories_with_filters(client, users):
    root = make_category('Alpha', users['admin'])
    make_category('Beta', users['admin'], parent=root)
    make_category('Gamma', users['admin'], is_active=False)
    make_post('Counted', users['author'], category=root)

    def names(**params):
        resp = client.get('/api/categories', query_string=params)
        assert resp.status_code == 200
        return [category['name'] for category in resp.get_json()['data']]

    assert names() == ['Alpha', 'Beta', 'Gamma']
    assert names(parent='null') == ['Alpha', 'Gamma']
    assert names(parent=root.id) == ['Beta']
    assert names(is_active='false') == ['Gamma']
    assert names(include_empty='false') == ['Alpha']
    assert names(search='alp') == ['Alpha']

    resp = client.get('/api/categories', query_string={'include_empty': 'false'})
    assert resp.get_json()['pagination']['total'] == 1
    assert resp.get_json()['data'][0]['post_count'] == 1


def test_unknown_category_is_not_found(client):
    assert client.get('/api/categories/999').get_json()['error'] == 'not_found'
    assert client.get('/api/categories/slug/missing').status_code == 404
