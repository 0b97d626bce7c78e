import pytest
from flask_jwt_extended import create_access_token

from cmsapp import create_app, db
from cmsapp.models import User, Category, Post, ROLE_ADMIN, ROLE_EDITOR, ROLE_AUTHOR, ROLE_READER


def make_config(tmp_path, database_uri='sqlite://', **overrides):
    config = {
        'TESTING': True,
        'APP_ENV': 'testing',
        'SQLALCHEMY_DATABASE_URI': database_uri,
        'SECRET_KEY': 'test-secret',
        'JWT_SECRET_KEY': 'test-jwt-secret-with-enough-length-for-hs256',
        'RATELIMIT_ENABLED': False,
        'LOG_TO_FILE': False,
        'LOG_LEVEL': 'WARNING',
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'MAX_FILE_SIZE': 1024 * 1024,
        'ADMIN_USERNAME': 'admin',
        'ADMIN_EMAIL': 'admin@cms.local',
        'ADMIN_PASSWORD': 'admin123',
    }
    config.update(overrides)
    return config


@pytest.fixture
def app(tmp_path):
    app = create_app(make_config(tmp_path))
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(username, role, is_active=True, password='password123'):
    user = User(username=username, email=f'{username}@example.com', role=role, is_active=is_active)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def users(app):
    """每种角色各一个用户，另有第二个 author 和一个已停用的 editor"""
    return {
        'admin': create_user('admin_user', ROLE_ADMIN),
        'editor': create_user('editor_user', ROLE_EDITOR),
        'author': create_user('author_user', ROLE_AUTHOR),
        'other_author': create_user('other_author', ROLE_AUTHOR),
        'reader': create_user('reader_user', ROLE_READER),
        'inactive': create_user('inactive_editor', ROLE_EDITOR, is_active=False),
    }


def auth_headers(user):
    token = create_access_token(identity=str(user.id))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def headers(users):
    return {name: auth_headers(user) for name, user in users.items()}


def make_category(name, user, parent=None, slug=None, order=0, is_active=True):
    from cmsapp.utils.slug_generator import slugify
    category = Category(
        name=name,
        slug=slug or slugify(name),
        parent_id=parent.id if parent else None,
        order=order,
        is_active=is_active,
        created_by=user.id,
    )
    db.session.add(category)
    db.session.commit()
    return category


def make_post(title, author, category=None, status='published', **fields):
    from datetime import datetime
    from cmsapp.utils.slug_generator import slugify
    post = Post(
        title=title,
        slug=fields.pop('slug', None) or slugify(title),
        content=fields.pop('content', f'Content of {title}'),
        category_id=category.id if category else None,
        author_id=author.id,
        status=status,
        published_at=datetime.utcnow() if status == 'published' else None,
        **fields
    )
    db.session.add(post)
    db.session.commit()
    return post
