"""
仪表盘统计。

所有统计都是在同一组实体上做分组计数/求和:
- dashboard_stats: 文章/分类/用户/媒体总数，按状态的文章数，按角色的用户数，
  热门文章和最近文章，媒体按类型的分布。
- content_stats: 当前用户可见范围内的文章统计 (admin 为全部，其他角色只看自己的)。
- analytics: 最近 period 天内 posts / users / media 的每日新增数，缺失的日期补 0。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
from datetime import datetime, timedelta, date

from sqlalchemy import func, select

from cmsapp import db
from cmsapp.models import Post, Category, User, Media, POST_STATUSES, ROLES, ROLE_ADMIN, STATUS_PUBLISHED
from cmsapp.services.media_service import type_breakdown
from cmsapp.utils.errors import ValidationFailed

ANALYTICS_TYPES = {
    'posts': Post,
    'users': User,
    'media': Media,
}
MAX_PERIOD_DAYS = 365


def _count(model, *conditions):
    stmt = select(func.count(model.id))
    for condition in conditions:
        stmt = stmt.where(condition)
    return db.session.scalar(stmt) or 0


def _grouped_counts(column, keys, *conditions):
    stmt = select(column, func.count()).group_by(column)
    for condition in conditions:
        stmt = stmt.where(condition)
    counts = {key: 0 for key in keys}
    for key, count in db.session.execute(stmt).all():
        counts[key] = count
    return counts


def _post_totals(*conditions):
    stmt = select(func.coalesce(func.sum(Post.views), 0), func.coalesce(func.sum(Post.likes), 0))
    for condition in conditions:
        stmt = stmt.where(condition)
    views, likes = db.session.execute(stmt).one()
    return int(views or 0), int(likes or 0)


def dashboard_stats():
    total_views, total_likes = _post_totals()
    popular = (Post.query.filter(Post.status == STATUS_PUBLISHED)
               .order_by(Post.views.desc(), Post.id.desc()).limit(5).all())
    recent = Post.query.order_by(Post.created_at.desc(), Post.id.desc()).limit(5).all()

    return {
        'overview': {
            'total_posts': _count(Post),
            'total_categories': _count(Category),
            'total_users': _count(User),
            'active_users': _count(User, User.is_active.is_(True)),
            'total_media': _count(Media, Media.is_active.is_(True)),
            'total_views': total_views,
            'total_likes': total_likes,
        },
        'posts_by_status': _grouped_counts(Post.status, POST_STATUSES),
        'users_by_role': _grouped_counts(User.role, ROLES),
        'media_by_type': type_breakdown(),
        'popular_posts': [post.to_dict(include_content=False) for post in popular],
        'recent_posts': [post.to_dict(include_content=False) for post in recent],
    }


def content_stats(user):
    """admin 统计全部文章，其他角色只统计自己的文章"""
    conditions = [] if user.role == ROLE_ADMIN else [Post.author_id == user.id]
    total_views, total_likes = _post_totals(*conditions)
    by_status = _grouped_counts(Post.status, POST_STATUSES, *conditions)
    return {
        'scope': 'all' if user.role == ROLE_ADMIN else 'own',
        'total_posts': sum(by_status.values()),
        'posts_by_status': by_status,
        'total_views': total_views,
        'total_likes': total_likes,
        'featured_posts': _count(Post, Post.is_featured.is_(True), *conditions),
    }


def _as_date_key(value):
    """SQLite 的 date() 返回字符串，PostgreSQL 返回 date 对象"""
    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m-%d')
    return str(value)[:10]


def analytics(period=30, data_type='posts'):
    """
    最近 period 天 (含今天) 每天新增的记录数，按日期升序。
    """
    model = ANALYTICS_TYPES.get(data_type)
    if model is None:
        raise ValidationFailed({'type': f"type 必须是 {', '.join(ANALYTICS_TYPES)} 之一"})
    if period < 1 or period > MAX_PERIOD_DAYS:
        raise ValidationFailed({'period': f'period 必须在 1 到 {MAX_PERIOD_DAYS} 之间'})

    today = datetime.utcnow().date()
    start = today - timedelta(days=period - 1)
    start_at = datetime.combine(start, datetime.min.time())

    day = func.date(model.created_at).label('day')
    rows = db.session.execute(
        select(day, func.count(model.id))
        .where(model.created_at >= start_at)
        .group_by(day)
    ).all()
    counts = {_as_date_key(value): count for value, count in rows}

    series = []
    for offset in range(period):
        key = (start + timedelta(days=offset)).strftime('%Y-%m-%d')
        series.append({'date': key, 'count': counts.get(key, 0)})

    return {
        'type': data_type,
        'period': period,
        'total': sum(item['count'] for item in series),
        'data': series,
    }
