"""
模型包初始化文件。

导入所有模型类，使其可以通过 cmsapp.models.ModelName 的方式被访问，
同时保证 Flask-Migrate / db.create_all() 能看到全部表。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from .user import User, ROLES, ROLE_ADMIN, ROLE_EDITOR, ROLE_AUTHOR, ROLE_READER
from .category import Category
from .post import Post, POST_STATUSES, STATUS_DRAFT, STATUS_PUBLISHED, STATUS_ARCHIVED
from .media import Media, classify_mimetype, MEDIA_TYPE_PREFIXES

__all__ = [
    'User',
    'ROLES',
    'ROLE_ADMIN',
    'ROLE_EDITOR',
    'ROLE_AUTHOR',
    'ROLE_READER',
    'Category',
    'Post',
    'POST_STATUSES',
    'STATUS_DRAFT',
    'STATUS_PUBLISHED',
    'STATUS_ARCHIVED',
    'Media',
    'classify_mimetype',
    'MEDIA_TYPE_PREFIXES',
]
