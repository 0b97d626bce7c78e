"""
此模块定义了仪表盘相关的 API 端点。

主要功能:
- /stats: 全站统计 (admin / editor)。
- /content-stats: 当前用户的文章统计 (admin 为全站)。
- /analytics: 最近 period 天 posts / users / media 的每日新增 (admin / editor)。
- /errors: 错误统计 (admin)，DELETE 重置统计。

使用 Flask 蓝图: dashboard_bp
"""
from flask import Blueprint, request, jsonify, g

from cmsapp.services import stats_service
from cmsapp.utils.auth_utils import permission_required
from cmsapp.utils.error_handler import ErrorHandler
from cmsapp.utils.validators import parse_positive_int

dashboard_bp = Blueprint('dashboard', __name__)


@dashboard_bp.route('/stats', methods=['GET'])
@permission_required('dashboard:stats')
def get_stats():
    return jsonify({'success': True, 'data': stats_service.dashboard_stats()}), 200


@dashboard_bp.route('/content-stats', methods=['GET'])
@permission_required('dashboard:content-stats')
def get_content_stats():
    return jsonify({'success': True, 'data': stats_service.content_stats(g.current_user)}), 200


@dashboard_bp.route('/analytics', methods=['GET'])
@permission_required('dashboard:analytics')
def get_analytics():
    period = parse_positive_int(request.args.get('period'), 'period', 30)
    data_type = request.args.get('type', 'posts')
    return jsonify({'success': True, 'data': stats_service.analytics(period, data_type)}), 200


@dashboard_bp.route('/errors', methods=['GET'])
@permission_required('dashboard:errors')
def get_error_stats():
    return jsonify({'success': True, 'data': ErrorHandler.get_error_stats()}), 200


@dashboard_bp.route('/errors', methods=['DELETE'])
@permission_required('dashboard:errors')
def reset_error_stats():
    return jsonify(ErrorHandler.reset_stats()), 200
