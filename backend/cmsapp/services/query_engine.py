"""
列表查询与分页。

list_posts / list_media 把过滤条件组合成一个 SQLAlchemy 查询 (各条件取交集，
文章搜索的多个关键词之间取并集，按相关度排序时命中越多越靠前)，
按排序键排序后分页。total 是不受分页影响的匹配总数，pages = ceil(total / page_size)。
排序键末尾总是追加 id 作为次级键，保证同一排序下翻页不会重复或遗漏记录。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
import math
from dataclasses import dataclass
from typing import List

from flask import current_app
from sqlalchemy import or_, case, exists, func, select

from cmsapp import db
from cmsapp.models import Post, Media, Category, MEDIA_TYPE_PREFIXES
from cmsapp.utils.errors import ValidationFailed

POST_SORT_FIELDS = {
    'created_at': Post.created_at,
    'updated_at': Post.updated_at,
    'published_at': Post.published_at,
    'title': Post.title,
    'views': Post.views,
    'likes': Post.likes,
}

MEDIA_SORT_FIELDS = {
    'created_at': Media.created_at,
    'size': Media.size,
    'original_name': Media.original_name,
}

DEFAULT_SORT = '-created_at'
RELEVANCE_SORT = 'relevance'


@dataclass
class PageResult:
    items: List
    total: int
    page: int
    page_size: int

    @property
    def pages(self):
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)

    def pagination(self):
        return {
            'page': self.page,
            'limit': self.page_size,
            'total': self.total,
            'pages': self.pages,
            'has_next': self.page < self.pages,
            'has_prev': self.page > 1,
        }


def clamp_page_size(page_size):
    max_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    default_size = current_app.config.get('DEFAULT_PAGE_SIZE', 10)
    if page_size is None:
        return default_size
    return max(1, min(page_size, max_size))


def paginate(query, page=1, page_size=None):
    """page 从 1 开始；超出范围的页返回空列表，total 不变"""
    page = max(1, page or 1)
    page_size = clamp_page_size(page_size)
    result = query.paginate(page=page, per_page=page_size, error_out=False)
    return PageResult(items=list(result.items), total=result.total or 0, page=page, page_size=page_size)


def escape_like(term):
    """转义 LIKE 通配符，用户输入按字面匹配"""
    return term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def contains(column, term):
    return column.ilike(f'%{escape_like(term)}%', escape='\\')


def parse_sort(sort, fields, default=DEFAULT_SORT):
    """
    解析排序参数，格式为 'field' (升序) 或 '-field' (降序)，多个字段用逗号分隔。
    返回 ORDER BY 子句列表。
    """
    sort = (sort or default).strip()
    clauses = []
    for part in sort.split(','):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith('-')
        name = part.lstrip('-+')
        column = fields.get(name)
        if column is None:
            raise ValidationFailed({'sort': f'不支持的排序字段: {name}'})
        clauses.append(column.desc() if descending else column.asc())
    return clauses


def search_terms(search):
    return [term for term in (search or '').split() if term]


def _post_relevance(terms):
    """标题命中权重 3，摘要 2，正文 1"""
    score = 0
    for term in terms:
        score = score + case((contains(Post.title, term), 3), else_=0) \
            + case((contains(Post.excerpt, term), 2), else_=0) \
            + case((contains(Post.content, term), 1), else_=0)
    return score


def _has_tag(tag):
    """
    tags 是 JSON 数组，按数组元素做等值匹配。
    不能对序列化后的文本做 LIKE: 非 ASCII 字符会被写成 \\uXXXX 转义。
    """
    if db.engine.dialect.name == 'postgresql':
        elements = func.json_array_elements_text(Post.tags).table_valued('value')
    else:
        elements = func.json_each(Post.tags).table_valued('value')
    return exists(select(1).select_from(elements).where(elements.c.value == tag))


def filter_posts(query, filters):
    """
    filters 中可用的键: status, category (ID 或 slug), author, tag, featured, search。
    值为 None 的键被忽略。
    """
    status = filters.get('status')
    if status:
        query = query.filter(Post.status == status)

    category = filters.get('category')
    if category is not None and category != '':
        if isinstance(category, int) or str(category).isdigit():
            query = query.filter(Post.category_id == int(category))
        else:
            query = query.join(Category, Post.category_id == Category.id).filter(Category.slug == category)

    author = filters.get('author')
    if author is not None:
        query = query.filter(Post.author_id == author)

    featured = filters.get('featured')
    if featured is not None:
        query = query.filter(Post.is_featured == featured)

    tag = filters.get('tag')
    if tag:
        query = query.filter(_has_tag(tag))

    terms = search_terms(filters.get('search'))
    if terms:
        # 任一关键词命中即可，排序时由 _post_relevance 区分命中程度
        query = query.filter(or_(*[
            or_(contains(Post.title, term), contains(Post.content, term), contains(Post.excerpt, term))
            for term in terms
        ]))
    return query


def list_posts(filters=None, sort=None, page=1, page_size=None, visible_statuses=None):
    """
    文章列表。visible_statuses 限制调用者能看到的状态 (匿名访客只能看已发布)，
    与 filters['status'] 同时作用。
    """
    filters = filters or {}
    query = filter_posts(Post.query, filters)
    if visible_statuses is not None:
        query = query.filter(Post.status.in_(visible_statuses))

    terms = search_terms(filters.get('search'))
    if sort == RELEVANCE_SORT:
        order = [_post_relevance(terms).desc(), Post.created_at.desc()] if terms else parse_sort(None, POST_SORT_FIELDS)
    else:
        order = parse_sort(sort, POST_SORT_FIELDS)
    query = query.order_by(*order, Post.id.desc())
    return paginate(query, page, page_size)


def list_media(filters=None, sort=None, page=1, page_size=None):
    """
    媒体列表，只包含未被软删除的记录。
    filters: type (image/video/audio/document), uploaded_by, search。
    search 在 original_name、alt、caption 中做不区分大小写的子串匹配。
    """
    filters = filters or {}
    query = Media.query.filter(Media.is_active.is_(True))

    media_type = filters.get('type')
    if media_type:
        prefixes = MEDIA_TYPE_PREFIXES.get(media_type)
        if prefixes is None:
            raise ValidationFailed({'type': f'type 必须是 {", ".join(MEDIA_TYPE_PREFIXES)} 之一'})
        query = query.filter(or_(*[Media.mimetype.like(f'{prefix}%') for prefix in prefixes]))

    uploaded_by = filters.get('uploaded_by')
    if uploaded_by is not None:
        query = query.filter(Media.uploaded_by == uploaded_by)

    search = (filters.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            contains(Media.original_name, search),
            contains(Media.alt, search),
            contains(Media.caption, search),
        ))

    query = query.order_by(*parse_sort(sort, MEDIA_SORT_FIELDS), Media.id.desc())
    return paginate(query, page, page_size)
