"""
此模块定义了与用户认证相关的 API 端点。

主要功能包括:
- 用户注册 (新用户角色为 reader)，返回 JWT 令牌。
- 用户登录 (支持邮箱或用户名)，返回 JWT 令牌并更新最后登录时间。
- 获取和修改当前用户资料 (包括修改密码，需要提供当前密码)。

依赖模型: User
使用 Flask 蓝图: auth_bp

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
import datetime

from flask import Blueprint, request, jsonify, current_app, g
from flask_jwt_extended import create_access_token
from sqlalchemy import func

from cmsapp import db
from cmsapp.models import User
from cmsapp.utils.auth_utils import permission_required
from cmsapp.utils.errors import Unauthenticated, ValidationFailed
from cmsapp.utils.validators import Validator, EMAIL_PATTERN

auth_bp = Blueprint('auth', __name__)

USERNAME_PATTERN_MESSAGE = '用户名只能包含字母、数字和下划线'
PASSWORD_MIN_LENGTH = 6


def _issue_token(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={'role': user.role}
    )


def _check_unique(username=None, email=None, exclude_id=None):
    errors = {}
    if username:
        query = User.query.filter(func.lower(User.username) == username.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            errors['username'] = '用户名已被使用'
    if email:
        query = User.query.filter(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            errors['email'] = '该邮箱已注册，请直接登录'
    if errors:
        raise ValidationFailed(errors)


# 注册路由
@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    validator = Validator(data)
    username = validator.string('username', min_length=3, max_length=30, required=True)
    if username and not username.replace('_', '').isalnum():
        validator.error('username', USERNAME_PATTERN_MESSAGE)
    email = validator.string('email', max_length=120, required=True, pattern=EMAIL_PATTERN,
                             message='请提供有效的邮箱地址')
    password = validator.string('password', min_length=PASSWORD_MIN_LENGTH, required=True)
    first_name = validator.string('first_name', max_length=50)
    last_name = validator.string('last_name', max_length=50)
    validator.raise_if_errors()

    email = email.lower()
    _check_unique(username=username, email=email)

    new_user = User(username=username, email=email, first_name=first_name, last_name=last_name)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    current_app.logger.info(f"新用户注册: {new_user.id} {new_user.username}")

    return jsonify({
        'success': True,
        'message': '注册成功',
        'token': _issue_token(new_user),
        'user': new_user.to_dict()
    }), 201


# 登录路由，identifier 可以是邮箱或用户名
@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    identifier = (data.get('email') or data.get('username') or '').strip()
    password = data.get('password') or ''
    if not identifier or not password:
        raise ValidationFailed({'credentials': '请提供邮箱(或用户名)和密码'})

    user = User.query.filter(
        (func.lower(User.email) == identifier.lower()) | (User.username == identifier)
    ).first()

    if not user or not user.check_password(password):
        current_app.logger.info(f"登录失败: {identifier}")
        raise Unauthenticated('邮箱或密码错误')
    if not user.is_active:
        raise Unauthenticated('账号已停用')

    # 更新最后登录时间
    user.last_login = datetime.datetime.utcnow()
    db.session.commit()

    return jsonify({
        'success': True,
        'message': '登录成功',
        'token': _issue_token(user),
        'user': user.to_dict()
    }), 200


@auth_bp.route('/me', methods=['GET'])
@permission_required('profile')
def get_me():
    return jsonify({'success': True, 'data': g.current_user.to_dict()}), 200


@auth_bp.route('/me', methods=['PUT'])
@permission_required('profile')
def update_me():
    """修改个人资料；角色与启用状态只能由管理员修改"""
    user = g.current_user
    data = request.get_json(silent=True) or {}
    validator = Validator(data)

    updates = {}
    for field, max_length in (('first_name', 50), ('last_name', 50), ('avatar', 255), ('bio', 1000)):
        if validator.has(field):
            updates[field] = validator.string(field, max_length=max_length) or None
    if validator.has('email'):
        updates['email'] = validator.string('email', max_length=120, required=True, pattern=EMAIL_PATTERN,
                                            message='请提供有效的邮箱地址')

    new_password = None
    if validator.has('new_password'):
        new_password = validator.string('new_password', min_length=PASSWORD_MIN_LENGTH, required=True)
        if not user.check_password(data.get('current_password') or ''):
            validator.error('current_password', '当前密码不正确')
    validator.raise_if_errors()

    if updates.get('email'):
        updates['email'] = updates['email'].lower()
        _check_unique(email=updates['email'], exclude_id=user.id)

    for field, value in updates.items():
        setattr(user, field, value)
    if new_password:
        user.set_password(new_password)

    db.session.commit()
    current_app.logger.info(f"用户 {user.id} 更新了个人资料")
    return jsonify({
        'success': True,
        'message': '资料更新成功',
        'data': user.to_dict()
    }), 200
