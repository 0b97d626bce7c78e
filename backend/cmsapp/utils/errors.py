"""
领域错误类型。

服务层与权限策略在检测到失败时抛出这些异常，由 ErrorHandler 统一转换为
JSON 响应: {"error": <kind>, "message": <说明>, "status": <HTTP 状态码>, ...}。
kind 是稳定的机器可读标识，前端据此判断失败类型。
"""


class CMSError(Exception):
    """所有领域错误的基类"""
    kind = 'error'
    status_code = 400
    default_message = '请求处理失败'

    def __init__(self, message=None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self):
        data = {
            'error': self.kind,
            'message': self.message,
            'status': self.status_code,
        }
        data.update(self.extra)
        return data


class Unauthenticated(CMSError):
    kind = 'unauthenticated'
    status_code = 401
    default_message = '需要登录后才能访问'


class InsufficientRole(CMSError):
    kind = 'insufficient_role'
    status_code = 403
    default_message = '当前角色无权执行此操作'


class NotOwner(CMSError):
    kind = 'not_owner'
    status_code = 403
    default_message = '只能操作自己的资源'


class NotFound(CMSError):
    kind = 'not_found'
    status_code = 404
    default_message = '请求的资源不存在'


class InvalidParent(CMSError):
    kind = 'invalid_parent'
    status_code = 400
    default_message = '父分类不存在'


class SelfParent(CMSError):
    kind = 'self_parent'
    status_code = 400
    default_message = '分类不能成为自己的父分类'


class CyclicParent(InvalidParent):
    kind = 'cyclic_parent'
    default_message = '父分类设置会形成循环'


class HasPosts(CMSError):
    kind = 'has_posts'
    status_code = 400
    default_message = '分类下仍有文章，如需删除请使用 force=true'

    def __init__(self, count, message=None):
        self.count = count
        super().__init__(message, post_count=count)


class ValidationFailed(CMSError):
    kind = 'validation_failed'
    status_code = 400
    default_message = '请求数据校验失败'

    def __init__(self, field_errors, message=None):
        self.field_errors = dict(field_errors)
        super().__init__(message, errors=self.field_errors)


class StoreUnavailable(CMSError):
    kind = 'store_unavailable'
    status_code = 503
    default_message = '数据存储暂不可用，请稍后再试'
