from functools import wraps
from flask import g
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity

from cmsapp import db
from cmsapp.models import User, ROLE_READER
from cmsapp.services.authorization import authorize


def load_user_from_token(optional=False):
    """
    从 JWT 中解析当前用户。

    令牌无效或过期时由 flask-jwt-extended 的 loader 返回 401；
    optional=True 且没有令牌时返回 None。
    """
    verify_jwt_in_request(optional=optional)
    identity = get_jwt_identity()
    if identity is None:
        return None
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def permission_required(action):
    """
    装饰器：在执行视图前完成身份认证和角色检查。

    通过后当前用户保存在 g.current_user；
    归属检查需要资源，由视图在加载资源后调用 enforce(g.current_user, action, resource)。
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = load_user_from_token(optional=True)
            authorize(user, action).raise_for_denial()
            g.current_user = user
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def optional_user():
    """公开接口中识别可选的登录用户，停用用户视为匿名"""
    user = load_user_from_token(optional=True)
    if user is not None and not user.is_active:
        return None
    return user


def can_see_unpublished(user):
    """匿名访客与 reader 只能看到已发布内容"""
    return user is not None and user.role != ROLE_READER
