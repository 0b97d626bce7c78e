"""
文章的创建、更新、删除与计数。

- slug 在创建时由标题生成一次 (冲突追加数字后缀)，之后修改标题不会改变 slug；
  显式指定的 slug 冲突时返回 validation_failed。
- excerpt 为空时由正文生成 (去掉 HTML 标签后取前 200 个字符)，已有的摘要不会被重新生成。
- 第一次变为 published 时写入 published_at，之后不再修改。
- 作者在创建时确定，更新请求中的作者字段被忽略。
- views / likes 通过单条 UPDATE ... SET views = views + 1 原子自增，不在应用中读改写。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
import logging
import re
from datetime import datetime

from sqlalchemy import update, select

from cmsapp import db
from cmsapp.models import Post, Category, POST_STATUSES, STATUS_PUBLISHED, STATUS_DRAFT
from cmsapp.utils.errors import NotFound, ValidationFailed
from cmsapp.utils.slug_generator import slugify, is_valid_slug, slug_exists, generate_unique_slug
from cmsapp.utils.validators import Validator

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
TAG_MAX_LENGTH = 50

_TAG_RE = re.compile(r'<[^>]+>')


def make_excerpt(content, length=EXCERPT_LENGTH):
    """去掉 HTML 标签，取前 length 个字符，超长时追加 '...'"""
    text = _TAG_RE.sub('', content or '')
    text = re.sub(r'\s+', ' ', text).strip()
    if len(text) > length:
        return text[:length].strip() + '...'
    return text


def get_post(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        raise NotFound('文章不存在')
    return post


def get_visible_post(post_id=None, slug=None, can_see_unpublished=False):
    """匿名访客与 reader 看不到未发布的文章，按不存在处理"""
    if slug is not None:
        post = Post.query.filter_by(slug=slug).first()
    else:
        post = db.session.get(Post, post_id)
    if post is None or (not can_see_unpublished and post.status != STATUS_PUBLISHED):
        raise NotFound('文章不存在')
    return post


def _validate_fields(data, creating):
    validator = Validator(data)
    fields = {}

    for field, max_length in (('title', 200), ('content', None)):
        value = validator.string(field, max_length=max_length, required=creating or validator.has(field))
        if value is not None:
            fields[field] = value

    optional_strings = (
        ('slug', 255), ('excerpt', 500), ('featured_image', 255),
        ('seo_title', 60), ('seo_description', 160),
    )
    for field, max_length in optional_strings:
        if validator.has(field):
            fields[field] = validator.string(field, max_length=max_length) or None

    if validator.has('status'):
        fields['status'] = validator.choice('status', POST_STATUSES)
    if validator.has('category_id'):
        fields['category_id'] = validator.reference('category_id')
    for field in ('tags', 'seo_keywords'):
        if validator.has(field):
            fields[field] = validator.string_list(field, item_max_length=TAG_MAX_LENGTH) or []
    for field in ('is_featured', 'allow_comments'):
        if validator.has(field):
            fields[field] = validator.boolean(field)

    validator.raise_if_errors()

    category_id = fields.get('category_id')
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise ValidationFailed({'category_id': f'分类 {category_id} 不存在'})

    slug = fields.get('slug')
    if slug is not None and not is_valid_slug(slug):
        raise ValidationFailed({'slug': 'slug 只能包含小写字母、数字和连字符'})
    return fields


def _resolve_slug(title, explicit_slug, exclude_id=None):
    if explicit_slug:
        if slug_exists(explicit_slug, Post, exclude_id):
            raise ValidationFailed({'slug': 'slug 已被使用'})
        return explicit_slug
    base = slugify(title)
    if not base:
        raise ValidationFailed({'slug': '无法从标题生成 slug，请显式指定'})
    return generate_unique_slug(base, Post, exclude_id)


def _apply_status(post, status):
    post.status = status
    if status == STATUS_PUBLISHED and post.published_at is None:
        post.published_at = datetime.utcnow()


def create_post(data, user):
    fields = _validate_fields(data, creating=True)

    post = Post(
        title=fields['title'],
        slug=_resolve_slug(fields['title'], fields.get('slug')),
        content=fields['content'],
        excerpt=fields.get('excerpt') or make_excerpt(fields['content']),
        featured_image=fields.get('featured_image'),
        category_id=fields.get('category_id'),
        tags=fields.get('tags') or [],
        author_id=user.id,
        is_featured=bool(fields.get('is_featured')),
        allow_comments=fields.get('allow_comments') if fields.get('allow_comments') is not None else True,
        seo_title=fields.get('seo_title'),
        seo_description=fields.get('seo_description'),
        seo_keywords=fields.get('seo_keywords') or [],
    )
    _apply_status(post, fields.get('status') or STATUS_DRAFT)

    db.session.add(post)
    db.session.commit()
    logger.info(f"文章已创建: {post.id} {post.slug} (作者 {user.id}, 状态 {post.status})")
    return post


def update_post(post, data):
    """post 由调用方加载并完成归属检查"""
    fields = _validate_fields(data, creating=False)

    if fields.get('slug') and fields['slug'] != post.slug:
        post.slug = _resolve_slug(post.title, fields['slug'], exclude_id=post.id)

    for field in ('title', 'content', 'featured_image', 'category_id',
                  'seo_title', 'seo_description', 'tags', 'seo_keywords'):
        if field in fields:
            setattr(post, field, fields[field])
    for field in ('is_featured', 'allow_comments'):
        if fields.get(field) is not None:
            setattr(post, field, fields[field])

    if 'excerpt' in fields:
        post.excerpt = fields['excerpt']
    if not post.excerpt:
        post.excerpt = make_excerpt(post.content)

    if fields.get('status'):
        _apply_status(post, fields['status'])

    db.session.commit()
    logger.info(f"文章已更新: {post.id} {post.slug}")
    return post


def delete_post(post):
    post_id = post.id
    db.session.delete(post)
    db.session.commit()
    logger.info(f"文章已删除: {post_id}")


def _increment(post_id, column_name):
    column = getattr(Post, column_name)
    result = db.session.execute(
        update(Post).where(Post.id == post_id).values({column_name: column + 1}),
        execution_options={'synchronize_session': False},
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise NotFound('文章不存在')
    value = db.session.scalar(select(column).where(Post.id == post_id))
    db.session.commit()
    return value


def increment_views(post_id):
    """原子自增浏览量，返回自增后的值"""
    return _increment(post_id, 'views')


def like_post(post_id):
    """原子自增点赞数，返回自增后的值"""
    return _increment(post_id, 'likes')
