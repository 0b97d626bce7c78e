from types import SimpleNamespace

import pytest

from cmsapp.services.authorization import authorize, check, enforce, POST_OWNER_FIELD, MEDIA_OWNER_FIELD
from cmsapp.utils.errors import Unauthenticated, InsufficientRole, NotOwner


def user(user_id, role, is_active=True):
    return SimpleNamespace(id=user_id, role=role, is_active=is_active)


def post(author_id):
    return SimpleNamespace(author_id=author_id)


def media(uploaded_by):
    return SimpleNamespace(uploaded_by=uploaded_by)


def test_anonymous_is_unauthenticated():
    decision = authorize(None, 'post:create')
    assert not decision.allowed
    assert decision.reason == 'unauthenticated'


def test_inactive_user_is_unauthenticated_before_role_check():
    decision = authorize(user(1, 'reader', is_active=False), 'category:create')
    assert decision.error is Unauthenticated


@pytest.mark.parametrize('role, allowed', [
    ('admin', True), ('editor', True), ('author', False), ('reader', False),
])
def test_category_mutation_roles(role, allowed):
    decision = authorize(user(1, role), 'category:update')
    assert decision.allowed is allowed
    if not allowed:
        assert decision.error is InsufficientRole


@pytest.mark.parametrize('role, allowed', [
    ('admin', True), ('editor', True), ('author', True), ('reader', False),
])
def test_post_creation_roles(role, allowed):
    assert authorize(user(1, role), 'post:create').allowed is allowed


def test_role_denied_before_ownership():
    decision = check(user(2, 'reader'), roles=('admin',), owner_field=POST_OWNER_FIELD, resource=post(2))
    assert decision.error is InsufficientRole


@pytest.mark.parametrize('role', ['editor', 'author', 'reader'])
def test_non_admin_cannot_touch_others_post(role):
    decision = authorize(user(1, role), 'post:update', post(2))
    assert not decision.allowed
    assert decision.error is NotOwner


def test_owner_may_update_own_post():
    assert authorize(user(1, 'author'), 'post:update', post(1)).allowed


def test_admin_bypasses_ownership():
    assert authorize(user(1, 'admin'), 'post:delete', post(99)).allowed
    assert authorize(user(1, 'admin'), 'media:delete', media(99)).allowed


def test_media_ownership_uses_uploaded_by():
    assert authorize(user(3, 'author'), 'media:update', media(3)).allowed
    assert authorize(user(3, 'author'), 'media:update', media(4)).error is NotOwner
    assert MEDIA_OWNER_FIELD == 'uploaded_by'


def test_missing_owner_is_denied():
    assert authorize(user(1, 'editor'), 'post:update', post(None)).error is NotOwner


def test_ownership_skipped_without_resource():
    assert authorize(user(1, 'reader'), 'post:update').allowed


def test_enforce_raises_denial():
    with pytest.raises(NotOwner):
        enforce(user(1, 'author'), 'post:delete', post(2))


def test_unknown_action():
    with pytest.raises(ValueError):
        authorize(user(1, 'admin'), 'post:publish-everything')
