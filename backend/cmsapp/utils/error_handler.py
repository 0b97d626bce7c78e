"""
错误处理模块

提供全站错误处理功能，包括：
- 领域错误 (CMSError) 转换为稳定的 JSON 响应
- 数据库错误映射为 validation_failed / store_unavailable，并回滚会话
- 404 根据路径模式给出更具体的提示
- 错误统计，供管理员通过 /api/dashboard/errors 查看
生产环境 (APP_ENV=production) 下不返回内部异常信息。
"""

from flask import jsonify, request, current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import re
import time
import threading
from collections import defaultdict, Counter
from datetime import datetime

from cmsapp.utils.errors import CMSError, ValidationFailed, StoreUnavailable

# 定义URL模式及错误提示
URL_PATTERNS = [
    (re.compile(r'/api/posts/([^/]+)'), "文章不存在或已被删除"),
    (re.compile(r'/api/categories/([^/]+)'), "分类不存在或已被删除"),
    (re.compile(r'/api/media/([^/]+)'), "媒体文件不存在或已被删除"),
    (re.compile(r'/api/users/([^/]+)'), "用户不存在或已被停用"),
    (re.compile(r'/uploads/'), "文件不存在"),
]

MAX_RECENT_ERRORS = 100

# 错误计数和统计
_error_lock = threading.Lock()
_error_stats = {
    'last_reset': time.time(),
    'total_count': 0,
    'by_code': defaultdict(int),  # 按状态码统计
    'by_kind': defaultdict(int),  # 按错误类型统计
    'by_endpoint': defaultdict(int),  # 按端点统计
    'recent_errors': [],  # 最近的错误列表
    'ip_count': Counter()  # IP计数器
}


class ErrorHandler:
    """错误处理器"""

    @staticmethod
    def register_handlers(app):
        """注册所有错误处理器"""

        @app.errorhandler(CMSError)
        def handle_cms_error(e):
            ErrorHandler._record_error(e.status_code, e.kind, e.message)
            return jsonify(e.to_dict()), e.status_code

        @app.errorhandler(SQLAlchemyError)
        def handle_store_error(e):
            from cmsapp import db
            db.session.rollback()
            if isinstance(e, IntegrityError):
                current_app.logger.warning(f"数据约束冲突: {request.path} - {e.orig}")
                error = ValidationFailed({'_store': '数据与已有记录冲突'}, message='数据违反唯一性或完整性约束')
            else:
                current_app.logger.error(f"数据库错误: {request.path} - {e}", exc_info=True)
                error = StoreUnavailable()
            return handle_cms_error(error)

        @app.errorhandler(404)
        def handle_not_found(e):
            """处理404错误"""
            error_msg = "请求的资源不存在"
            for pattern, msg in URL_PATTERNS:
                if pattern.search(request.path):
                    error_msg = msg
                    break

            ErrorHandler._record_error(404, 'not_found', error_msg)
            return jsonify({
                'error': 'not_found',
                'message': error_msg,
                'status': 404
            }), 404

        @app.errorhandler(500)
        def handle_server_error(e):
            """处理500错误"""
            original = getattr(e, 'original_exception', None) or e
            current_app.logger.error(f"服务器错误: {request.path} - {original}", exc_info=original)
            ErrorHandler._record_error(500, 'server_error', str(original))

            if current_app.config.get('APP_ENV') == 'production':
                message = '服务器内部错误，请稍后再试'
            else:
                message = str(original)
            return jsonify({
                'error': 'server_error',
                'message': message,
                'status': 500
            }), 500

        # 注册其他常见错误代码
        for code in [400, 401, 403, 405, 413, 429]:
            app.register_error_handler(code, ErrorHandler._create_error_handler(code))

    @staticmethod
    def _create_error_handler(status_code):
        """创建特定状态码的错误处理器"""
        error_kinds = {
            400: ('bad_request', "请求无效"),
            401: ('unauthenticated', "未授权访问"),
            403: ('forbidden', "禁止访问"),
            405: ('method_not_allowed', "不支持的请求方法"),
            413: ('payload_too_large', "上传内容过大"),
            429: ('rate_limited', "请求过于频繁，请稍后再试"),
        }

        def handler(e):
            kind, error_msg = error_kinds.get(status_code, ('error', "请求出错"))
            ErrorHandler._record_error(status_code, kind, error_msg)
            return jsonify({
                'error': kind,
                'message': error_msg,
                'status': status_code
            }), status_code

        return handler

    @staticmethod
    def _record_error(status_code, kind, error_msg):
        """记录错误统计信息"""
        path = request.path
        client_ip = request.remote_addr
        with _error_lock:
            _error_stats['total_count'] += 1
            _error_stats['by_code'][status_code] += 1
            _error_stats['by_kind'][kind] += 1
            _error_stats['by_endpoint'][ErrorHandler._simplify_path(path)] += 1
            _error_stats['ip_count'][client_ip] += 1

            _error_stats['recent_errors'].append({
                'timestamp': datetime.now().isoformat(),
                'status_code': status_code,
                'error': kind,
                'path': path,
                'method': request.method,
                'client_ip': client_ip,
                'message': error_msg
            })

            # 如果超过最大数量，移除最早的错误
            if len(_error_stats['recent_errors']) > MAX_RECENT_ERRORS:
                _error_stats['recent_errors'] = _error_stats['recent_errors'][-MAX_RECENT_ERRORS:]

    @staticmethod
    def _simplify_path(path):
        """简化路径，替换ID为占位符"""
        path = re.sub(r'/\d+', '/{id}', path)
        path = re.sub(r'/slug/[a-z0-9-]+', '/slug/{slug}', path)
        return path

    @staticmethod
    def get_error_stats():
        """获取错误统计信息"""
        with _error_lock:
            return {
                'total_count': _error_stats['total_count'],
                'by_code': dict(_error_stats['by_code']),
                'by_kind': dict(_error_stats['by_kind']),
                'by_endpoint': dict(_error_stats['by_endpoint']),
                'recent_errors': _error_stats['recent_errors'][-20:],  # 最近20条
                'top_ips': dict(_error_stats['ip_count'].most_common(10)),  # 前10个IP
                'last_reset': _error_stats['last_reset']
            }

    @staticmethod
    def reset_stats():
        """重置错误统计"""
        with _error_lock:
            _error_stats['last_reset'] = time.time()
            _error_stats['total_count'] = 0
            _error_stats['by_code'] = defaultdict(int)
            _error_stats['by_kind'] = defaultdict(int)
            _error_stats['by_endpoint'] = defaultdict(int)
            _error_stats['recent_errors'] = []
            _error_stats['ip_count'] = Counter()

        return {"success": True, "message": "错误统计已重置"}
