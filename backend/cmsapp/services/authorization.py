"""
权限策略。

所有写操作统一通过 authorize() 判定，检查顺序固定:
    1. 身份认证: 用户不存在或已停用 -> Unauthenticated
    2. 角色: 角色不在动作的允许列表中 -> InsufficientRole (此时尚未加载资源)
    3. 归属: 仅对归属敏感的动作且传入了资源时检查；admin 直接放行，
       其他角色要求资源的归属字段等于当前用户 ID -> NotOwner
任一步失败立即返回，不再继续后面的检查。
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from cmsapp.models.user import ROLE_ADMIN, ROLE_EDITOR, ROLE_AUTHOR
from cmsapp.utils.errors import Unauthenticated, InsufficientRole, NotOwner

CATEGORY_MANAGERS = (ROLE_ADMIN, ROLE_EDITOR)
CONTENT_CREATORS = (ROLE_ADMIN, ROLE_EDITOR, ROLE_AUTHOR)
ADMINS = (ROLE_ADMIN,)

POST_OWNER_FIELD = 'author_id'
MEDIA_OWNER_FIELD = 'uploaded_by'


@dataclass(frozen=True)
class Rule:
    roles: Optional[Tuple[str, ...]] = None  # None 表示任意已登录角色
    owner_field: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    error: Optional[type] = None
    message: Optional[str] = None

    @property
    def reason(self):
        return self.error.kind if self.error else None

    def raise_for_denial(self):
        if not self.allowed:
            raise self.error(self.message)


ALLOW = Decision(True)

POLICIES = {
    'category:create': Rule(roles=CATEGORY_MANAGERS),
    'category:update': Rule(roles=CATEGORY_MANAGERS),
    'category:delete': Rule(roles=CATEGORY_MANAGERS),
    'post:create': Rule(roles=CONTENT_CREATORS),
    'post:update': Rule(owner_field=POST_OWNER_FIELD),
    'post:delete': Rule(owner_field=POST_OWNER_FIELD),
    'media:list': Rule(),
    'media:view': Rule(),
    'media:upload': Rule(roles=CONTENT_CREATORS),
    'media:update': Rule(owner_field=MEDIA_OWNER_FIELD),
    'media:delete': Rule(owner_field=MEDIA_OWNER_FIELD),
    'media:stats': Rule(roles=CATEGORY_MANAGERS),
    'dashboard:stats': Rule(roles=CATEGORY_MANAGERS),
    'dashboard:analytics': Rule(roles=CATEGORY_MANAGERS),
    'dashboard:content-stats': Rule(),
    'dashboard:errors': Rule(roles=ADMINS),
    'user:manage': Rule(roles=ADMINS),
    'profile': Rule(),
}


def check(user, roles=None, owner_field=None, resource=None):
    """
    通用判定函数，参数为 (身份, 角色允许列表, 资源归属字段, 资源)。

    resource 为 None 时跳过归属检查，用于加载资源之前的预检查。
    """
    if user is None or not getattr(user, 'is_active', False):
        return Decision(False, Unauthenticated)

    if roles is not None and user.role not in roles:
        return Decision(False, InsufficientRole)

    if owner_field is not None and resource is not None and user.role != ROLE_ADMIN:
        owner_id = getattr(resource, owner_field, None)
        if owner_id is None or owner_id != user.id:
            return Decision(False, NotOwner)

    return ALLOW


def authorize(user, action, resource=None):
    """按动作名查找规则并判定"""
    try:
        rule = POLICIES[action]
    except KeyError:
        raise ValueError(f'未定义的权限动作: {action}')
    return check(user, roles=rule.roles, owner_field=rule.owner_field, resource=resource)


def enforce(user, action, resource=None):
    """判定失败时抛出对应的领域错误"""
    decision = authorize(user, action, resource)
    decision.raise_for_denial()
    return decision

