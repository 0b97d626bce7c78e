import os
import time
import uuid
import logging
from collections import namedtuple
from datetime import datetime

from flask import current_app
from werkzeug.utils import secure_filename

from cmsapp.utils.errors import ValidationFailed

logger = logging.getLogger(__name__)

# 允许上传的 MIME 类型
ALLOWED_MIMETYPES = {
    # 图片
    'image/jpeg', 'image/png', 'image/gif', 'image/webp', 'image/svg+xml',
    # 文档
    'application/pdf', 'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'text/plain', 'text/csv',
    # 视频
    'video/mp4', 'video/webm', 'video/ogg',
    # 音频
    'audio/mpeg', 'audio/wav', 'audio/ogg',
}

# 交给媒体记录的存储结果
StoredFile = namedtuple('StoredFile', ['filename', 'original_name', 'mimetype', 'size', 'path', 'url'])


class LocalStorage:
    """本地磁盘存储工具类，文件按 年/月 目录存放"""

    def _folder(self):
        return current_app.config['UPLOAD_FOLDER']

    def _max_size(self):
        return current_app.config.get('MAX_FILE_SIZE', 5 * 1024 * 1024)

    @staticmethod
    def _file_size(file_object):
        stream = file_object.stream
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        return size

    def check(self, file_object):
        """校验 MIME 类型和大小，失败时抛出 ValidationFailed"""
        if file_object is None or not file_object.filename:
            raise ValidationFailed({'file': '没有上传文件'})
        mimetype = (file_object.mimetype or '').lower()
        if mimetype not in ALLOWED_MIMETYPES:
            raise ValidationFailed({'file': f"不允许的文件类型: {mimetype or '未知'}"})
        size = self._file_size(file_object)
        if size > self._max_size():
            raise ValidationFailed({'file': f'文件大小不能超过 {self._max_size() // (1024 * 1024)}MB'})
        return mimetype, size

    def save(self, file_object):
        """
        保存上传的文件

        Args:
            file_object: request.files 中的 FileStorage 对象

        Returns:
            StoredFile: (filename, original_name, mimetype, size, path, url)
        """
        mimetype, size = self.check(file_object)

        original_name = file_object.filename
        _, ext = os.path.splitext(secure_filename(original_name) or '')
        # 生成唯一文件名，避免重名
        filename = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext.lower()}"

        now = datetime.utcnow()
        relative_dir = os.path.join(f'{now.year:04d}', f'{now.month:02d}')
        target_dir = os.path.join(self._folder(), relative_dir)
        os.makedirs(target_dir, exist_ok=True)

        path = os.path.join(target_dir, filename)
        file_object.save(path)

        url_prefix = current_app.config.get('UPLOAD_URL_PREFIX', '/uploads').rstrip('/')
        url = f"{url_prefix}/{relative_dir.replace(os.sep, '/')}/{filename}"
        logger.info(f"文件已保存: {original_name} -> {path} ({size} 字节)")
        return StoredFile(filename, original_name, mimetype, size, path, url)

    def remove(self, path):
        """删除磁盘上的文件，失败时抛出 OSError，由调用方决定如何处理"""
        os.remove(path)
        logger.info(f"文件已删除: {path}")


# 创建全局实例
local_storage = LocalStorage()
