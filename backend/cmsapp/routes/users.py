"""
此模块定义了管理员使用的用户管理 API 端点。

主要功能:
- 分页获取用户列表，可按角色、启用状态、关键字过滤。
- 修改用户的角色与启用状态。
- 停用用户 (软删除，只将 is_active 置为 False)；管理员不能停用自己。

依赖模型: User
使用 Flask 蓝图: users_bp
"""
from flask import Blueprint, request, jsonify, current_app, g

from cmsapp import db
from cmsapp.models import User, ROLES
from cmsapp.services.query_engine import paginate, contains
from cmsapp.utils.auth_utils import permission_required
from cmsapp.utils.errors import NotFound, ValidationFailed
from cmsapp.utils.validators import Validator, parse_bool, parse_positive_int

users_bp = Blueprint('users', __name__)


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('用户不存在')
    return user


@users_bp.route('/', methods=['GET'])
@permission_required('user:manage')
def list_users():
    query = User.query
    role = request.args.get('role')
    if role:
        if role not in ROLES:
            raise ValidationFailed({'role': f"role 必须是 {', '.join(ROLES)} 之一"})
        query = query.filter(User.role == role)
    is_active = parse_bool(request.args.get('is_active'))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(contains(User.username, search) | contains(User.email, search))

    result = paginate(
        query.order_by(User.created_at.desc(), User.id.desc()),
        parse_positive_int(request.args.get('page'), 'page', 1),
        parse_positive_int(request.args.get('limit'), 'limit', None),
    )
    return jsonify({
        'success': True,
        'data': [user.to_dict() for user in result.items],
        'pagination': result.pagination()
    }), 200


@users_bp.route('/<int:user_id>', methods=['PUT'])
@permission_required('user:manage')
def update_user(user_id):
    user = _get_user(user_id)
    data = request.get_json(silent=True) or {}
    validator = Validator(data)
    role = validator.choice('role', ROLES)
    is_active = validator.boolean('is_active')
    validator.raise_if_errors()

    if user.id == g.current_user.id and (is_active is False or (role and role != user.role)):
        raise ValidationFailed({'user': '不能修改自己的角色或停用自己'})

    if role:
        user.role = role
    if is_active is not None:
        user.is_active = is_active
    db.session.commit()
    current_app.logger.info(f"管理员 {g.current_user.id} 更新了用户 {user.id}: role={user.role}, is_active={user.is_active}")
    return jsonify({
        'success': True,
        'message': '用户更新成功',
        'data': user.to_dict()
    }), 200


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@permission_required('user:manage')
def deactivate_user(user_id):
    user = _get_user(user_id)
    if user.id == g.current_user.id:
        raise ValidationFailed({'user': '不能停用自己'})
    user.is_active = False
    db.session.commit()
    current_app.logger.info(f"管理员 {g.current_user.id} 停用了用户 {user.id}")
    return jsonify({
        'success': True,
        'message': '用户已停用'
    }), 200
