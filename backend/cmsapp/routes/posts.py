"""
此模块定义了与文章 (Post) 相关的 API 端点。

主要功能:
- 文章分页列表，支持按状态、分类 (ID 或 slug)、作者、标签、推荐标记和关键字过滤，
  支持排序参数 sort (如 -created_at、views、relevance)。
- 按 ID 或 slug 获取文章详情，可选 increment_views=true 同时增加浏览量。
- 创建文章 (admin / editor / author)，更新和删除文章 (本人或 admin)。
- 点赞与浏览计数 (公开接口，原子自增)。
匿名访客和 reader 只能看到已发布的文章。

依赖服务: services.post_service, services.query_engine
使用 Flask 蓝图: posts_bp

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from flask import Blueprint, request, jsonify, g

from cmsapp.models import STATUS_PUBLISHED, POST_STATUSES
from cmsapp.services import post_service
from cmsapp.services.authorization import enforce
from cmsapp.services.query_engine import list_posts
from cmsapp.utils.auth_utils import permission_required, optional_user, can_see_unpublished
from cmsapp.utils.errors import ValidationFailed
from cmsapp.utils.validators import parse_bool, parse_positive_int

posts_bp = Blueprint('posts', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed({'body': '请求体必须是 JSON 对象'})
    return data


@posts_bp.route('/', methods=['GET'])
def get_posts():
    """获取文章列表"""
    args = request.args
    user = optional_user()

    status = args.get('status')
    if status and status not in POST_STATUSES:
        raise ValidationFailed({'status': f"status 必须是 {', '.join(POST_STATUSES)} 之一"})

    filters = {
        'status': status,
        'category': args.get('category'),
        'author': parse_positive_int(args.get('author'), 'author', None),
        'tag': args.get('tag'),
        'featured': parse_bool(args.get('featured')),
        'search': args.get('search'),
    }
    visible = None if can_see_unpublished(user) else [STATUS_PUBLISHED]

    result = list_posts(
        filters,
        sort=args.get('sort'),
        page=parse_positive_int(args.get('page'), 'page', 1),
        page_size=parse_positive_int(args.get('limit'), 'limit', None),
        visible_statuses=visible,
    )
    return jsonify({
        'success': True,
        'data': [post.to_dict(include_content=False) for post in result.items],
        'pagination': result.pagination()
    }), 200


def _post_response(post):
    data = post.to_dict()
    if parse_bool(request.args.get('increment_views'), False):
        data['views'] = post_service.increment_views(post.id)
    return jsonify({'success': True, 'data': data}), 200


@posts_bp.route('/slug/<string:slug>', methods=['GET'])
def get_post_by_slug(slug):
    user = optional_user()
    post = post_service.get_visible_post(slug=slug, can_see_unpublished=can_see_unpublished(user))
    return _post_response(post)


@posts_bp.route('/<int:post_id>', methods=['GET'])
def get_post_detail(post_id):
    user = optional_user()
    post = post_service.get_visible_post(post_id, can_see_unpublished=can_see_unpublished(user))
    return _post_response(post)


@posts_bp.route('/', methods=['POST'])
@permission_required('post:create')
def create_post():
    post = post_service.create_post(_json_body(), g.current_user)
    return jsonify({
        'success': True,
        'message': '文章创建成功',
        'data': post.to_dict()
    }), 201


@posts_bp.route('/<int:post_id>', methods=['PUT'])
@permission_required('post:update')
def update_post(post_id):
    post = post_service.get_post(post_id)
    enforce(g.current_user, 'post:update', post)
    post = post_service.update_post(post, _json_body())
    return jsonify({
        'success': True,
        'message': '文章更新成功',
        'data': post.to_dict()
    }), 200


@posts_bp.route('/<int:post_id>', methods=['DELETE'])
@permission_required('post:delete')
def delete_post(post_id):
    post = post_service.get_post(post_id)
    enforce(g.current_user, 'post:delete', post)
    post_service.delete_post(post)
    return jsonify({
        'success': True,
        'message': '文章删除成功'
    }), 200


@posts_bp.route('/<int:post_id>/like', methods=['POST'])
def like_post(post_id):
    likes = post_service.like_post(post_id)
    return jsonify({'success': True, 'data': {'id': post_id, 'likes': likes}}), 200


@posts_bp.route('/<int:post_id>/view', methods=['POST'])
def view_post(post_id):
    views = post_service.increment_views(post_id)
    return jsonify({'success': True, 'data': {'id': post_id, 'views': views}}), 200
