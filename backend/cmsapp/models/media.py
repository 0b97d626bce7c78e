"""
定义媒体文件模型 (Media)。
记录上传文件的存储信息 (文件名、原始文件名、MIME 类型、大小、路径、URL)、
替代文本、说明以及上传者。删除时先做软删除 (is_active=False)。
"""
from datetime import datetime
from cmsapp import db

# MIME 前缀到媒体类型的映射，document 同时匹配 application/ 与 text/
MEDIA_TYPE_PREFIXES = {
    'image': ('image/',),
    'video': ('video/',),
    'audio': ('audio/',),
    'document': ('application/', 'text/'),
}


def classify_mimetype(mimetype):
    """按 MIME 前缀归类，无法归类时返回 'other'"""
    for media_type, prefixes in MEDIA_TYPE_PREFIXES.items():
        if mimetype and mimetype.startswith(prefixes):
            return media_type
    return 'other'


class Media(db.Model):
    __tablename__ = 'media'

    id = db.Column(db.Integer, primary_key=True)
    filename = db.Column(db.String(255), nullable=False)
    original_name = db.Column(db.String(255), nullable=False)
    mimetype = db.Column(db.String(100), nullable=False, index=True)
    size = db.Column(db.Integer, nullable=False)
    path = db.Column(db.String(500), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    alt = db.Column(db.String(200), nullable=True, default='')
    caption = db.Column(db.String(500), nullable=True, default='')
    uploaded_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    uploader = db.relationship('User', lazy='joined')

    @property
    def media_type(self):
        return classify_mimetype(self.mimetype)

    def to_dict(self):
        return {
            'id': self.id,
            'filename': self.filename,
            'original_name': self.original_name,
            'mimetype': self.mimetype,
            'media_type': self.media_type,
            'size': self.size,
            'url': self.url,
            'alt': self.alt or '',
            'caption': self.caption or '',
            'uploaded_by': self.uploader.to_summary() if self.uploader else None,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f'<Media {self.id} {self.original_name}>'
