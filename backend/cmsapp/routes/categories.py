"""
此模块定义了与分类 (Category) 相关的 API 端点。

主要功能:
- 分类分页列表 (按 parent、is_active、include_empty、search 过滤)。
- 层级树 (/hierarchy)，可去掉没有文章的分类。
- 按 ID 或 slug 获取分类详情 (包含父分类摘要、子分类和文章数)。
- 创建、更新、删除分类，仅 admin / editor 可用；删除时如有文章引用需 force=true。

依赖服务: services.category_tree
使用 Flask 蓝图: categories_bp

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from flask import Blueprint, jsonify, request, g

from cmsapp.services import category_tree
from cmsapp.utils.auth_utils import permission_required
from cmsapp.utils.validators import parse_bool, parse_positive_int
from cmsapp.utils.errors import ValidationFailed

categories_bp = Blueprint('categories', __name__)


def _list_filters(args):
    filters = {}
    if 'parent' in args:
        parent = args.get('parent')
        if parent in ('', 'null', 'none', 'root'):
            filters['parent'] = None
        else:
            filters['parent'] = parse_positive_int(parent, 'parent', None)
    filters['is_active'] = parse_bool(args.get('is_active'))
    filters['include_empty'] = parse_bool(args.get('include_empty'), True)
    filters['search'] = args.get('search')
    return filters


@categories_bp.route('/', methods=['GET'])
def get_categories():
    """获取分类列表"""
    result = category_tree.list_categories(
        _list_filters(request.args),
        parse_positive_int(request.args.get('page'), 'page', 1),
        parse_positive_int(request.args.get('limit'), 'limit', None),
    )
    return jsonify({
        'success': True,
        'data': result.items,
        'pagination': result.pagination()
    }), 200


@categories_bp.route('/hierarchy', methods=['GET'])
def get_hierarchy():
    """获取启用分类的层级树"""
    include_empty = parse_bool(request.args.get('include_empty'), True)
    return jsonify({
        'success': True,
        'data': category_tree.hierarchy(include_empty=include_empty)
    }), 200


@categories_bp.route('/slug/<string:slug>', methods=['GET'])
def get_category_by_slug(slug):
    category = category_tree.get_category_by_slug(slug)
    return jsonify({'success': True, 'data': category_tree.category_detail(category)}), 200


@categories_bp.route('/<int:category_id>', methods=['GET'])
def get_category(category_id):
    """获取指定ID的分类"""
    category = category_tree.get_category(category_id)
    return jsonify({'success': True, 'data': category_tree.category_detail(category)}), 200


@categories_bp.route('/', methods=['POST'])
@permission_required('category:create')
def create_category():
    """创建新分类"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed({'body': '请求体必须是 JSON 对象'})
    category = category_tree.create_category(data, g.current_user)
    return jsonify({
        'success': True,
        'message': '分类创建成功',
        'data': category_tree.category_detail(category)
    }), 201


@categories_bp.route('/<int:category_id>', methods=['PUT'])
@permission_required('category:update')
def update_category(category_id):
    """更新分类信息"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed({'body': '请求体必须是 JSON 对象'})
    category = category_tree.update_category(category_id, data)
    return jsonify({
        'success': True,
        'message': '分类更新成功',
        'data': category_tree.category_detail(category)
    }), 200


@categories_bp.route('/<int:category_id>', methods=['DELETE'])
@permission_required('category:delete')
def delete_category(category_id):
    """删除分类，有文章引用时需要 force=true"""
    force = parse_bool(request.args.get('force'), False)
    cleared = category_tree.delete_category(category_id, force=force)
    return jsonify({
        'success': True,
        'message': '分类删除成功',
        'cleared_posts': cleared
    }), 200
