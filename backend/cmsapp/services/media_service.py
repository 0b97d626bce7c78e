"""
媒体记录管理。

上传由 utils.file_storage 完成磁盘存放和类型/大小过滤，这里只根据
(filename, original_name, mimetype, size, path, url) 建立记录。
删除默认是软删除 (is_active=False)；permanent=True 时先删除记录并提交，再删除磁盘文件，
文件删除失败只记录日志，不影响记录的删除。

注意: 如果新增、删除或修改功能，必须在这开头的注释中同步修改，如发现功能与注释描述不同，也可以在确定后修改。
"""
import logging

from sqlalchemy import func, select

from cmsapp import db
from cmsapp.models import Media, MEDIA_TYPE_PREFIXES, classify_mimetype
from cmsapp.utils.errors import NotFound
from cmsapp.utils.file_storage import local_storage
from cmsapp.utils.validators import Validator

logger = logging.getLogger(__name__)


def register_upload(stored, user, alt='', caption=''):
    media = Media(
        filename=stored.filename,
        original_name=stored.original_name,
        mimetype=stored.mimetype,
        size=stored.size,
        path=stored.path,
        url=stored.url,
        alt=alt or '',
        caption=caption or '',
        uploaded_by=user.id,
    )
    db.session.add(media)
    return media


def upload_files(files, user, alt='', caption=''):
    """
    保存并登记一组文件，全部成功后一次提交。
    任一文件校验或入库失败时，已写入磁盘的文件会被清理。
    """
    saved = []
    try:
        for file_object in files:
            stored = local_storage.save(file_object)
            saved.append(stored)
            register_upload(stored, user, alt, caption)
        db.session.commit()
    except Exception:
        db.session.rollback()
        for stored in saved:
            _remove_file_quietly(stored.path)
        raise
    items = Media.query.filter(Media.path.in_([stored.path for stored in saved])).order_by(Media.id.asc()).all()
    logger.info(f"用户 {user.id} 上传了 {len(items)} 个文件")
    return items


def get_media(media_id, include_inactive=False):
    media = db.session.get(Media, media_id)
    if media is None or (not media.is_active and not include_inactive):
        raise NotFound('媒体文件不存在')
    return media


def update_media(media, data):
    validator = Validator(data)
    if validator.has('alt'):
        media.alt = validator.string('alt', max_length=200) or ''
    if validator.has('caption'):
        media.caption = validator.string('caption', max_length=500) or ''
    validator.raise_if_errors()
    db.session.commit()
    logger.info(f"媒体信息已更新: {media.id}")
    return media


def _remove_file_quietly(path):
    try:
        local_storage.remove(path)
    except OSError as e:
        logger.error(f"删除文件失败 {path}: {e}")
        return False
    return True


def delete_media(media, permanent=False):
    """
    删除媒体。返回 {'permanent': bool, 'file_removed': bool | None}。
    """
    media.is_active = False
    if not permanent:
        db.session.commit()
        logger.info(f"媒体已软删除: {media.id}")
        return {'permanent': False, 'file_removed': None}

    # 先提交删除，提交失败时记录和文件都保留
    media_id, path = media.id, media.path
    db.session.delete(media)
    db.session.commit()
    file_removed = _remove_file_quietly(path)
    logger.info(f"媒体已永久删除: {media_id} (文件删除{'成功' if file_removed else '失败'})")
    return {'permanent': True, 'file_removed': file_removed}


def type_breakdown(query_filter=None):
    """按媒体类型分组: {type: {'count': n, 'size': bytes}}

    先在数据库中按 mimetype 分组计数求和，再按 MIME 前缀归入各类型。
    """
    stmt = (select(Media.mimetype, func.count(Media.id), func.coalesce(func.sum(Media.size), 0))
            .where(Media.is_active.is_(True)))
    if query_filter is not None:
        stmt = stmt.where(query_filter)
    rows = db.session.execute(stmt.group_by(Media.mimetype)).all()
    breakdown = {media_type: {'count': 0, 'size': 0} for media_type in list(MEDIA_TYPE_PREFIXES) + ['other']}
    for mimetype, count, size in rows:
        bucket = breakdown[classify_mimetype(mimetype)]
        bucket['count'] += count
        bucket['size'] += int(size or 0)
    return breakdown


def media_stats():
    total_files, total_size = db.session.execute(
        select(func.count(Media.id), func.coalesce(func.sum(Media.size), 0))
        .where(Media.is_active.is_(True))
    ).one()
    recent = (Media.query.filter(Media.is_active.is_(True))
              .order_by(Media.created_at.desc(), Media.id.desc())
              .limit(5).all())
    return {
        'total_files': total_files,
        'total_size': int(total_size or 0),
        'by_type': type_breakdown(),
        'recent_uploads': [media.to_dict() for media in recent],
    }
