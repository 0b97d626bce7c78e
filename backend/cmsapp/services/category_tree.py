"""
分类树管理。

分类以扁平记录 + parent_id 的邻接表形式存储，层级结构在需要时按 parent_id 分组构建。
children 与 post_count 不存储，均由本模块的查询函数计算。

主要功能:
- 创建/更新分类: 校验父分类存在、不能以自己为父、不能形成多级循环 (A→B→C→A)；
  名称变化且未显式指定 slug 时重新生成 slug。
- 删除分类: 有文章引用且未传 force 时返回 HasPosts(count)；否则在同一事务中
  清空文章的分类引用、把子分类提升为根分类、删除分类本身。
- 层级树: 只包含启用的分类，每一层按 (order, name) 排序；include_empty=False 时
  去掉没有文章的节点，其下仍有保留的后代提升到该节点的位置。
- 分页列表。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
import logging

from sqlalchemy import func, update, select

from cmsapp import db
from cmsapp.models import Category, Post
from cmsapp.services.query_engine import paginate, contains
from cmsapp.utils.errors import NotFound, InvalidParent, SelfParent, CyclicParent, HasPosts, ValidationFailed
from cmsapp.utils.slug_generator import slugify, is_valid_slug, slug_exists, generate_unique_slug
from cmsapp.utils.validators import Validator, HEX_COLOR_PATTERN

logger = logging.getLogger(__name__)


def get_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound('分类不存在')
    return category


def get_category_by_slug(slug):
    category = Category.query.filter_by(slug=slug).first()
    if category is None:
        raise NotFound('分类不存在')
    return category


def post_count(category_id):
    return db.session.scalar(select(func.count(Post.id)).where(Post.category_id == category_id)) or 0


def post_counts():
    """一次分组查询得到 {category_id: 文章数}"""
    rows = db.session.execute(
        select(Post.category_id, func.count(Post.id))
        .where(Post.category_id.isnot(None))
        .group_by(Post.category_id)
    ).all()
    return {category_id: count for category_id, count in rows}


def children_of(category_id):
    return (Category.query
            .filter(Category.parent_id == category_id)
            .order_by(Category.order.asc(), Category.name.asc())
            .all())


def category_detail(category):
    """分类详情: 父分类摘要、直接子分类和文章数"""
    data = category.to_dict()
    parent = db.session.get(Category, category.parent_id) if category.parent_id else None
    data['parent'] = parent.to_summary() if parent else None
    data['children'] = [child.to_summary() for child in children_of(category.id)]
    data['post_count'] = post_count(category.id)
    return data


def would_create_cycle(category_id, parent_id):
    """从 parent_id 沿父链向上走，遇到 category_id 说明会形成循环"""
    visited = set()
    current = parent_id
    while current is not None and current not in visited:
        if current == category_id:
            return True
        visited.add(current)
        current = db.session.scalar(select(Category.parent_id).where(Category.id == current))
    return False


def _validate_parent(parent_id, category_id=None):
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise SelfParent()
    if db.session.get(Category, parent_id) is None:
        raise InvalidParent(f'父分类 {parent_id} 不存在')
    if category_id is not None and would_create_cycle(category_id, parent_id):
        raise CyclicParent()


def derive_slug(name, explicit_slug=None, exclude_id=None):
    """
    显式 slug 必须合法且未被占用；否则由名称生成，冲突时追加数字后缀。
    """
    if explicit_slug:
        if not is_valid_slug(explicit_slug):
            raise ValidationFailed({'slug': 'slug 只能包含小写字母、数字和连字符'})
        if slug_exists(explicit_slug, Category, exclude_id):
            raise ValidationFailed({'slug': 'slug 已被使用'})
        return explicit_slug

    base = slugify(name)
    if not base:
        raise ValidationFailed({'slug': '无法从名称生成 slug，请显式指定'})
    return generate_unique_slug(base, Category, exclude_id)


def _validate_fields(data, creating):
    validator = Validator(data)
    fields = {}
    name = validator.string('name', max_length=100, required=creating or validator.has('name'))
    if name is not None:
        fields['name'] = name
    if validator.has('slug') and data.get('slug'):
        fields['slug'] = validator.string('slug', max_length=120)
    if validator.has('description'):
        fields['description'] = validator.string('description', max_length=500)
    if validator.has('color'):
        fields['color'] = validator.string('color', pattern=HEX_COLOR_PATTERN, message='color 必须是 #rgb 或 #rrggbb 格式') or None
    if validator.has('order'):
        fields['order'] = validator.integer('order', minimum=0)
    if validator.has('is_active'):
        fields['is_active'] = validator.boolean('is_active')
    if validator.has('parent_id'):
        fields['parent_id'] = validator.reference('parent_id')
    validator.raise_if_errors()
    return fields


def _ensure_unique_name(name, exclude_id=None):
    query = Category.query.filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise ValidationFailed({'name': '分类名称已存在'})


def create_category(data, user):
    fields = _validate_fields(data, creating=True)
    _ensure_unique_name(fields['name'])
    _validate_parent(fields.get('parent_id'))

    category = Category(
        name=fields['name'],
        slug=derive_slug(fields['name'], fields.get('slug')),
        description=fields.get('description'),
        color=fields.get('color'),
        parent_id=fields.get('parent_id'),
        order=fields.get('order') if fields.get('order') is not None else 0,
        is_active=fields.get('is_active') if fields.get('is_active') is not None else True,
        created_by=user.id,
    )
    db.session.add(category)
    db.session.commit()
    logger.info(f"分类已创建: {category.id} {category.slug} (用户 {user.id})")
    return category


def update_category(category_id, data):
    category = get_category(category_id)
    fields = _validate_fields(data, creating=False)

    if 'parent_id' in fields:
        _validate_parent(fields['parent_id'], category.id)

    name_changed = 'name' in fields and fields['name'] != category.name
    if name_changed:
        _ensure_unique_name(fields['name'], exclude_id=category.id)
        category.name = fields['name']

    if fields.get('slug'):
        if fields['slug'] != category.slug:
            category.slug = derive_slug(category.name, fields['slug'], exclude_id=category.id)
    elif name_changed:
        category.slug = derive_slug(category.name, exclude_id=category.id)

    for field in ('description', 'color', 'parent_id'):
        if field in fields:
            setattr(category, field, fields[field])
    for field in ('order', 'is_active'):
        if fields.get(field) is not None:
            setattr(category, field, fields[field])

    db.session.commit()
    logger.info(f"分类已更新: {category.id} {category.slug}")
    return category


def delete_category(category_id, force=False):
    """
    删除分类。返回被清空分类引用的文章数。

    三步写操作在同一事务中提交: 文章 category_id 置空、子分类 parent_id 置空、删除分类。
    子分类成为根分类，不会挂到祖父分类下，也不会被删除。
    """
    category = get_category(category_id)
    count = post_count(category.id)
    if count > 0 and not force:
        raise HasPosts(count)

    db.session.execute(
        update(Post).where(Post.category_id == category.id).values(category_id=None),
        execution_options={'synchronize_session': False},
    )
    db.session.execute(
        update(Category).where(Category.parent_id == category.id).values(parent_id=None),
        execution_options={'synchronize_session': False},
    )
    db.session.delete(category)
    db.session.commit()
    logger.info(f"分类已删除: {category_id} (清空 {count} 篇文章的分类引用)")
    return count


def hierarchy(include_empty=True):
    """
    构建启用分类的层级树。

    返回根节点列表，每个节点为 category.to_summary() 加 order、parent_id、post_count、children。
    父分类未启用或不存在的启用分类不会出现在树中。
    """
    categories = (Category.query
                  .filter(Category.is_active.is_(True))
                  .order_by(Category.order.asc(), Category.name.asc())
                  .all())
    counts = post_counts()

    by_parent = {}
    for category in categories:
        by_parent.setdefault(category.parent_id, []).append(category)

    visited = set()

    def build(parent_id):
        nodes = []
        for category in by_parent.get(parent_id, []):
            if category.id in visited:
                continue
            visited.add(category.id)
            children = build(category.id)
            count = counts.get(category.id, 0)
            if not include_empty and count == 0:
                nodes.extend(children)
                continue
            node = category.to_summary()
            node.update({
                'order': category.order,
                'parent_id': category.parent_id,
                'post_count': count,
                'children': children,
            })
            nodes.append(node)
        return nodes

    return build(None)


def list_categories(filters=None, page=1, page_size=None):
    """
    分类分页列表。filters: parent (ID 或 'null' 表示根分类), is_active, include_empty, search。
    include_empty=False 在查询中过滤，保证 total 与分页一致。
    """
    filters = filters or {}
    query = Category.query

    if 'parent' in filters:
        parent = filters['parent']
        if parent is None:
            query = query.filter(Category.parent_id.is_(None))
        else:
            query = query.filter(Category.parent_id == parent)

    is_active = filters.get('is_active')
    if is_active is not None:
        query = query.filter(Category.is_active.is_(is_active))

    if filters.get('include_empty') is False:
        has_posts = select(Post.id).where(Post.category_id == Category.id).exists()
        query = query.filter(has_posts)

    search = (filters.get('search') or '').strip()
    if search:
        query = query.filter(contains(Category.name, search))

    query = query.order_by(Category.order.asc(), Category.name.asc(), Category.id.asc())
    result = paginate(query, page, page_size)
    counts = post_counts()
    result.items = [dict(category.to_dict(), post_count=counts.get(category.id, 0)) for category in result.items]
    return result
